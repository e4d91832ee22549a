"""
AMI event and action names.

This module contains the names used on the wire by the AMI layer:
- Event types the bridge consumes (the `Event` field)
- Action names the client sends (the `Action` field)
"""

from enum import Enum

class AmiEvent(str, Enum):
    NEWCHANNEL = "Newchannel"
    HANGUP = "Hangup"
    DIAL_BEGIN = "DialBegin"
    DIAL_END = "DialEnd"
    HOLD = "Hold"
    UNHOLD = "Unhold"
    BRIDGE_ENTER = "BridgeEnter"
    BRIDGE_LEAVE = "BridgeLeave"
    AGENT_CALLED = "AgentCalled"
    AGENT_CONNECT = "AgentConnect"
    AGENT_COMPLETE = "AgentComplete"

class AmiAction(str, Enum):
    LOGIN = "Login"
    LOGOFF = "Logoff"
    ORIGINATE = "Originate"
    HANGUP = "Hangup"
    REDIRECT = "Redirect"
    PARK = "Park"
    STATUS = "Status"
    CORE_SHOW_CHANNELS = "CoreShowChannels"
