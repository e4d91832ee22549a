"""Tests for AMI packet parsing and action encoding."""

import pytest

from amibridge.exceptions import AmiProtocolError
from amibridge.io.packet import Packet, encode_action, format_variables, parse_line, parse_packet


def test_parse_line_trims_field_and_value():
    assert parse_line("  Channel :  SIP/8001-1  ") == ("Channel", "SIP/8001-1")


def test_parse_line_splits_on_first_colon_only():
    """Values such as timestamps or URLs keep their own colons."""
    assert parse_line("Message: Call at 12:30:01") == ("Message", "Call at 12:30:01")


def test_parse_line_without_colon_is_ignored():
    assert parse_line("Asterisk Call Manager/5.0.0") is None
    assert parse_line("") is None


def test_parse_line_empty_value():
    assert parse_line("Variable:") == ("Variable", "")


def test_parse_packet_stops_at_blank_line():
    packet = parse_packet("Event: Hangup\r\nChannel: SIP/8001-1\r\n\r\nEvent: Newchannel\r\n")
    assert packet == {"Event": "Hangup", "Channel": "SIP/8001-1"}


def test_parse_packet_skips_lines_without_colon():
    packet = parse_packet(["Response: Follows", "--END COMMAND--", "ActionID: ami-1-1", ""])
    assert packet == {"Response": "Follows", "ActionID": "ami-1-1"}


def test_parse_packet_last_duplicate_field_wins():
    packet = parse_packet("Event: VarSet\nValue: a\nValue: b\n")
    assert packet["Value"] == "b"


def test_packet_accessors():
    packet = Packet({"Response": "Success", "ActionID": "ami-3-100", "Message": "Authentication accepted"})
    assert packet.is_response()
    assert not packet.is_event()
    assert packet.response == "Success"
    assert packet.action_id == "ami-3-100"
    assert packet.message == "Authentication accepted"
    assert packet.event is None


@pytest.mark.parametrize("value,expected", [
    ("Success", True),
    ("success", True),
    ("SUCCESS", True),
    ("Error", False),
    ("Successful", False),
])
def test_packet_is_success(value, expected):
    assert Packet({"Response": value}).is_success() is expected


def test_packet_without_response_is_not_success():
    assert Packet({"Message": "Authentication accepted"}).is_success() is False
    assert Packet().is_success() is False


def test_encode_action_wire_format():
    wire = encode_action({"Action": "Hangup", "Channel": "SIP/8001-1", "Cause": 16})
    assert wire == b"Action: Hangup\r\nChannel: SIP/8001-1\r\nCause: 16\r\n\r\n"


def test_encode_action_preserves_field_order():
    wire = encode_action({"Action": "Login", "Username": "u", "Secret": "s", "ActionID": "ami-1-1"}).decode()
    assert [line.split(":")[0] for line in wire.split("\r\n") if line] == ["Action", "Username", "Secret", "ActionID"]


def test_encode_action_requires_action_field():
    with pytest.raises(ValueError):
        encode_action({"Channel": "SIP/8001"})


def test_encode_action_rejects_line_breaks_in_values():
    with pytest.raises(AmiProtocolError):
        encode_action({"Action": "Originate", "Exten": "100\r\nAction: Hangup"})


def test_encode_action_rejects_colon_in_field_name():
    with pytest.raises(AmiProtocolError):
        encode_action({"Action": "Status", "Bad:Name": "x"})


def test_encode_then_parse_gives_same_fields():
    fields = {"Action": "Redirect", "Channel": "SIP/8001-1", "Exten": "8002", "Context": "default", "Priority": "1"}
    assert parse_packet(encode_action(fields).decode()) == fields


def test_format_variables():
    assert format_variables({"CALLERID": "12345", "LEAD": 7}) == "CALLERID=12345,LEAD=7"
    assert format_variables({}) == ""
