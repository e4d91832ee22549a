"""
amibridge background service.

Connects to the Asterisk Manager Interface, listens for call events in real
time, and forwards relevant events to the CRM over HTTP. Stops on SIGINT or
SIGTERM at the next AMI read timeout.

Run directly:
    amibridge --config examples/config.yaml
"""

import argparse
import logging
import os
from logging.handlers import TimedRotatingFileHandler
from typing import Optional

from .config import BridgeConfig
from .crm import CrmForwarder, HttpRelay
from .io import AmiListener
from .utils import install_stop_signals, run_with_keyboard_interrupt


class Const:
    DEFAULT_CONFIG = "config.yaml"
    LOGGER_NAME = "amibridge"
    LOG_FILE = "service.log"


class AmiBridgeService:
    """Bridge between the Asterisk Manager Interface and a CRM.

    Wires the persistent AMI listener to the CRM forwarder and owns their
    lifetimes: one listener, one HTTP relay, for the life of the process.
    """

    def __init__(self, config_path: str = Const.DEFAULT_CONFIG, print_traffic: bool = False) -> None:
        self.config: BridgeConfig = BridgeConfig.load(config_path)
        self.print_traffic = print_traffic
        self.logger: logging.Logger = logging.getLogger(Const.LOGGER_NAME)
        self.relay: Optional[HttpRelay] = None
        self.listener: Optional[AmiListener] = None
        self.forwarder: Optional[CrmForwarder] = None

    def setup_logging(self) -> None:
        """Configure logging with a daily rotating file handler and an optional console handler."""
        settings = self.config.logging
        self.logger.setLevel(settings.levelno)

        os.makedirs(settings.dir, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            os.path.join(settings.dir, Const.LOG_FILE),
            when=settings.when,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(fmt="%(asctime)s\t%(levelname)s\t%(message)s", datefmt="%Y-%m-%d %H:%M:%S"))
        self.logger.addHandler(file_handler)

        if settings.to_stdout:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s.%(msecs)03d %(levelname)s: %(message)s', datefmt='%H:%M:%S'
            ))
            self.logger.addHandler(console_handler)

    def setup(self) -> None:
        """Build the relay, listener and forwarder from config."""
        ami, crm = self.config.ami, self.config.crm
        self.relay = HttpRelay(
            timeout=crm.timeout,
            connect_timeout=crm.connect_timeout,
            verify=crm.ssl_verify,
            logger=self.logger,
        )
        self.listener = AmiListener(
            ami.host,
            ami.port,
            ami.username,
            ami.secret,
            connect_timeout=ami.connect_timeout,
            read_timeout=ami.read_timeout,
            reconnect_delay=ami.reconnect_delay,
            logger=self.logger,
            print_traffic=self.print_traffic,
        )
        if crm.base_url:
            self.forwarder = CrmForwarder(
                self.relay,
                crm.base_url,
                incoming_path=crm.incoming_path,
                hangup_path=crm.hangup_path,
                logger=self.logger,
            )
            self.forwarder.register(self.listener)
        else:
            self.logger.warning("No crm.base_url configured; call events will not be forwarded")

    async def run(self) -> None:
        self.setup_logging()
        self.setup()
        self.logger.info(f"==================== Starting amibridge ({self.config.ami.host}:{self.config.ami.port}) ====================")
        install_stop_signals(self.stop)
        try:
            await self.listener.start()
        finally:
            await self.relay.aclose()

    def stop(self) -> None:
        if self.listener:
            self.listener.stop()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Forward Asterisk AMI call events to a CRM")
    parser.add_argument("--config", default=Const.DEFAULT_CONFIG, help="Path to the YAML config file")
    parser.add_argument("--print-traffic", action="store_true", help="Echo AMI traffic to stdout")
    args = parser.parse_args(argv)

    async def _run() -> None:
        service = AmiBridgeService(args.config, print_traffic=args.print_traffic)
        await service.run()

    run_with_keyboard_interrupt(_run)


if __name__ == "__main__":
    main()
