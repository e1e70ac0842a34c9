"""Plugin configuration loaded from a JSON file."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Union

_USIZE_MAX = (1 << 64) - 1
_DIGITS = re.compile(r"\d+")

ENCODER_PROST = "prost"
ENCODER_RAW = "raw"
_ENCODERS = (ENCODER_PROST, ENCODER_RAW)


class ConfigError(Exception):
    """The configuration could not be opened or is not valid."""


def deserialize_num_str(value: Any) -> int:
    """Accept an unsigned integer given either as a JSON number or as a string."""
    if isinstance(value, bool):
        raise ConfigError(f"invalid number: {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and _DIGITS.fullmatch(value):
        number = int(value)
    else:
        raise ConfigError(f"invalid number: {value!r}")
    if not 0 <= number <= _USIZE_MAX:
        raise ConfigError(f"number out of range: {number}")
    return number


def parse_encoder(value: Any) -> str:
    """Return the encoder name, which must be ``prost`` or ``raw``."""
    if not isinstance(value, str):
        raise ConfigError(f"invalid encoder, expected a string: {value!r}")
    if value not in _ENCODERS:
        raise ConfigError(f"failed to decode encoder: {value}")
    return value


def _expect_object(name: str, data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError(f"{name}: expected an object, got {data!r}")
    return data


def _reject_unknown(name: str, data: Mapping[str, Any], known: tuple) -> None:
    for key in data:
        if key not in known:
            raise ConfigError(f"{name}: unknown field `{key}`, expected one of {known}")


def _expect_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{name}: expected a string, got {value!r}")
    return value


def _optional_object(name: str, value: Any) -> Optional[dict]:
    if value is None:
        return None
    return dict(_expect_object(name, value))


@dataclass(frozen=True)
class ConfigLogs:
    level: str = "info"

    @classmethod
    def from_dict(cls, data: Any) -> "ConfigLogs":
        data = _expect_object("logs", data)
        _reject_unknown("logs", data, ("level",))
        if "level" in data:
            return cls(level=_expect_str("logs.level", data["level"]))
        return cls()


@dataclass(frozen=True)
class ConfigChannel:
    encoder: str = ENCODER_RAW
    # Aligned to a power of two; ~20k messages per slot gives about 100 slots.
    max_messages: int = 2_097_152
    # 15 GiB; ~150 MiB per slot gives about 100 slots.
    max_bytes: int = 15 * 1024 * 1024 * 1024

    @classmethod
    def from_dict(cls, data: Any) -> "ConfigChannel":
        data = _expect_object("channel", data)
        _reject_unknown("channel", data, ("encoder", "max_messages", "max_bytes"))
        values = {}
        if "encoder" in data:
            values["encoder"] = parse_encoder(data["encoder"])
        for name in ("max_messages", "max_bytes"):
            if name in data:
                values[name] = deserialize_num_str(data[name])
        return cls(**values)


_CONFIG_FIELDS = ("libpath", "logs", "metrics", "tokio", "channel", "quic", "tcp", "grpc")


@dataclass(frozen=True)
class Config:
    """Top-level configuration; server sections are kept as raw objects."""

    libpath: str = ""
    logs: ConfigLogs = field(default_factory=ConfigLogs)
    metrics: Optional[dict] = None
    tokio: dict = field(default_factory=dict)
    channel: ConfigChannel = field(default_factory=ConfigChannel)
    quic: Optional[dict] = None
    tcp: Optional[dict] = None
    grpc: Optional[dict] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        data = _expect_object("config", data)
        _reject_unknown("config", data, _CONFIG_FIELDS)
        values: dict = {}
        if "libpath" in data:
            values["libpath"] = _expect_str("libpath", data["libpath"])
        if "logs" in data:
            values["logs"] = ConfigLogs.from_dict(data["logs"])
        if "tokio" in data:
            values["tokio"] = dict(_expect_object("tokio", data["tokio"]))
        if "channel" in data:
            values["channel"] = ConfigChannel.from_dict(data["channel"])
        for name in ("metrics", "quic", "tcp", "grpc"):
            if name in data:
                values[name] = _optional_object(name, data[name])
        return cls(**values)

    @classmethod
    def load_from_str(cls, config: str) -> "Config":
        try:
            data = json.loads(config)
        except json.JSONDecodeError as error:
            raise ConfigError(f"failed to read config: {error}") from error
        return cls.from_dict(data)

    @classmethod
    def load_from_file(cls, path: Union[str, Path]) -> "Config":
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as error:
            raise ConfigError(f"failed to open config {path}: {error}") from error
        return cls.load_from_str(text)