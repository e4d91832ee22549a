"""
One-shot AMI session: log in, run a few call-control actions, log off.

    python examples/ami_actions.py examples/config.yaml
"""

import asyncio
import sys

from amibridge import AmiClient, BridgeConfig
from amibridge.utils import run_with_keyboard_interrupt


async def main():
    config = BridgeConfig.load(sys.argv[1] if len(sys.argv) > 1 else "config.yaml")
    ami = config.ami

    async with await AmiClient.create(ami.host, ami.port, connect_timeout=ami.connect_timeout, print_traffic=True) as client:
        if not await client.login(ami.username, ami.secret):
            print("AMI login failed.")
            return
        print(f"AMI login OK (version {client.version})")

        result = await client.originate("SIP/8001", "0501234567", context="default", priority="1")
        print(f"originate: {result.response or 'no response'}")

        result = await client.hangup("SIP/8001-00000001")
        print(f"hangup: {result.response or 'no response'}")

        result = await client.park("SIP/customer-00000002", "SIP/8001-00000001")
        print(f"park: {result.response or 'no response'}")

        result = await client.redirect("SIP/8001-00000001", "8002", context="default")
        print(f"redirect: {result.response or 'no response'}")

        result = await client.channel_status("SIP/8001-00000001")
        for key, value in result.items():
            print(f"  {key} = {value}")

    print("Disconnected.")


if __name__ == "__main__":
    run_with_keyboard_interrupt(main)
