"""
CRM-side collaborators.

This module contains the HTTP side of the bridge:
- HttpRelay - bounded-timeout JSON POSTs
- CrmForwarder - AMI call events to CRM callbacks
- ViciDialAgent - agent call-control over the ViciDial HTTP API
"""

from .relay import HttpRelay, RelayResult, RelayConst
from .forwarder import CrmForwarder, ForwarderConst
from .vicidial import ViciDialAgent, ViciDialConst

__all__ = [
    "HttpRelay",
    "RelayResult",
    "RelayConst",
    "CrmForwarder",
    "ForwarderConst",
    "ViciDialAgent",
    "ViciDialConst",
]
