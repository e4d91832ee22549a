"""
Bridge configuration.

Loaded from a YAML file shaped like examples/config.yaml:

    server: 192.168.1.100
    ami:
      username: manager
      secret: manager_secret
    crm:
      base_url: https://crm.example.com/public
    logging:
      level: INFO

A top-level `server` is used as the AMI host and the ViciDial server when
those sections do not name one.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Optional, Self

import yaml

from .exceptions import AmiConfigurationError


@dataclass
class AmiSettings:
    host: str
    username: str
    secret: str
    port: int = 5038
    connect_timeout: float = 30.0
    read_timeout: float = 5.0
    reconnect_delay: float = 5.0


@dataclass
class CrmSettings:
    base_url: str = ""
    incoming_path: str = "search_income_calls"
    hangup_path: str = "call_hangup"
    timeout: float = 30.0
    connect_timeout: float = 10.0
    ssl_verify: bool = True


@dataclass
class ViciDialSettings:
    server: str = ""
    protocol: str = "http"
    source: str = "Mani"


class LogConst:
    # Rollover intervals accepted by TimedRotatingFileHandler
    ROLLOVER_WHEN = ("S", "M", "H", "D", "MIDNIGHT", "W0", "W1", "W2", "W3", "W4", "W5", "W6")


@dataclass
class LogSettings:
    dir: str = "logs"
    level: str = "INFO"
    to_stdout: bool = True
    # Rolled over daily; old files kept as service.log.YYYY-MM-DD
    when: str = "midnight"
    backup_count: int = 30

    @property
    def levelno(self) -> int:
        return logging.getLevelName(self.level.upper())


@dataclass
class BridgeConfig:
    ami: AmiSettings
    crm: CrmSettings = field(default_factory=CrmSettings)
    vicidial: ViciDialSettings = field(default_factory=ViciDialSettings)
    logging: LogSettings = field(default_factory=LogSettings)

    @classmethod
    def load(cls, path: str) -> Self:
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise AmiConfigurationError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise AmiConfigurationError(f"Invalid YAML in {path}: {e}") from e
        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        if not isinstance(data, dict):
            raise AmiConfigurationError("Config must be a mapping")
        server = data.get("server")

        ami = dict(_section(data, "ami"))
        if server and not ami.get("host"):
            ami["host"] = server
        missing = [f for f in ("host", "username", "secret") if not ami.get(f)]
        if missing:
            raise AmiConfigurationError(f"Missing AMI config fields: {', '.join(missing)}")

        vicidial = dict(_section(data, "vicidial"))
        if server and not vicidial.get("server"):
            vicidial["server"] = server

        config = cls(
            ami=_build(AmiSettings, ami, "ami"),
            crm=_build(CrmSettings, _section(data, "crm"), "crm"),
            vicidial=_build(ViciDialSettings, vicidial, "vicidial"),
            logging=_build(LogSettings, _section(data, "logging"), "logging"),
        )
        if not isinstance(config.logging.levelno, int):
            raise AmiConfigurationError(f"Unknown log level: {config.logging.level}")
        if config.logging.when.upper() not in LogConst.ROLLOVER_WHEN:
            raise AmiConfigurationError(f"Unknown logging.when rollover: {config.logging.when}")
        return config


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise AmiConfigurationError(f"{name} config must be a mapping")
    return section


def _build(settings_cls, values: dict[str, Any], name: str):
    known = {f.name: f for f in fields(settings_cls)}
    unknown = [k for k in values if k not in known]
    if unknown:
        raise AmiConfigurationError(f"Unknown {name} config fields: {', '.join(unknown)}")
    kwargs: dict[str, Any] = {}
    for key, value in values.items():
        default: Optional[Any] = known[key].default
        try:
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise ValueError(f"expected true or false, got {value!r}")
            elif isinstance(default, (int, float)):
                value = type(default)(value)
            elif isinstance(default, str) or key in ("host", "username", "secret"):
                value = str(value)
        except (TypeError, ValueError) as e:
            raise AmiConfigurationError(f"Invalid {name}.{key}: {e}") from e
        kwargs[key] = value
    return settings_cls(**kwargs)
