"""Tests for the bridge service wiring and process helpers."""

import asyncio
import logging
import signal
from logging.handlers import TimedRotatingFileHandler

import pytest

from amibridge.crm import CrmForwarder
from amibridge.io import ListenerState
from amibridge.service import AmiBridgeService
from amibridge.utils import install_stop_signals


@pytest.fixture
def config_file(tmp_path):
    def factory(crm: str = "crm:\n  base_url: https://crm.example.com/public/\n", port: int = 5038):
        path = tmp_path / "config.yaml"
        path.write_text(
            "server: 127.0.0.1\n"
            "ami:\n"
            "  username: manager\n"
            "  secret: manager_secret\n"
            f"  port: {port}\n"
            "  connect_timeout: 1\n"
            "  read_timeout: 0.2\n"
            "  reconnect_delay: 0.05\n"
            f"{crm}"
            "logging:\n"
            f"  dir: {tmp_path / 'logs'}\n"
            "  to_stdout: false\n"
        )
        return str(path)
    return factory


@pytest.fixture
def service_logger():
    logger = logging.getLogger("amibridge")
    handlers = list(logger.handlers)
    yield logger
    for handler in logger.handlers[len(handlers):]:
        handler.close()
    logger.handlers = handlers


def test_setup_registers_forwarder(config_file):
    service = AmiBridgeService(config_file())
    service.setup()

    assert isinstance(service.forwarder, CrmForwarder)
    assert service.forwarder.base_url == "https://crm.example.com/public"
    assert service.listener.host == "127.0.0.1"
    assert service.listener.read_timeout == 0.2
    assert "Newchannel" in service.listener.registry.event_types()
    assert "Hangup" in service.listener.registry.event_types()


def test_setup_without_crm_url_skips_forwarder(config_file, caplog):
    service = AmiBridgeService(config_file(crm=""))
    with caplog.at_level(logging.WARNING, logger="amibridge"):
        service.setup()
    assert service.forwarder is None
    assert len(service.listener.registry) == 0
    assert "No crm.base_url configured" in caplog.text


def test_setup_logging_writes_service_log(config_file, tmp_path, service_logger):
    service = AmiBridgeService(config_file())
    service.setup_logging()
    service.logger.info("hello")
    for handler in service.logger.handlers:
        handler.flush()

    text = (tmp_path / "logs" / "service.log").read_text()
    assert "\tINFO\thello" in text
    file_handlers = [h for h in service.logger.handlers if isinstance(h, TimedRotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].when == "MIDNIGHT"
    assert file_handlers[0].backupCount == 30


@pytest.mark.asyncio
async def test_run_dispatches_events_and_stops(ami_server, config_file, service_logger):
    registered = asyncio.Event()

    async def script(session):
        await session.greet()
        await session.accept_login()
        await registered.wait()
        await session.send_packet(Event="Hangup", Channel="SIP/8001-1")
        await session.read_action()

    server = await ami_server(script)
    service = AmiBridgeService(config_file(crm="", port=server.port))
    seen = []

    task = asyncio.create_task(service.run())
    while service.listener is None:
        await asyncio.sleep(0.01)
    service.listener.on("Hangup", lambda e: (seen.append(e["Channel"]), service.stop()))
    registered.set()
    await asyncio.wait_for(task, timeout=5.0)

    assert seen == ["SIP/8001-1"]
    assert service.listener.state == ListenerState.STOPPED
    assert service.relay._client.is_closed


@pytest.mark.asyncio
async def test_install_stop_signals():
    loop = asyncio.get_running_loop()
    installed = install_stop_signals(lambda: None)
    try:
        assert set(installed) <= {signal.SIGINT, signal.SIGTERM}
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)
