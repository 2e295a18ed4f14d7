"""
Header primitives consumed by the retarget engine.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union


class HeaderError(Exception):
    pass


def _parse_int(data: dict[str, Any], key: str) -> int:
    if key not in data:
        raise HeaderError(f"Header missing field {key}")
    value = data[key]
    if isinstance(value, bool):
        raise HeaderError(f"Header field {key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip(), 0)
        except ValueError as exc:
            raise HeaderError(f"Header field {key} is not an integer: {value!r}") from exc
    raise HeaderError(f"Header field {key} must be an integer")


@dataclass(frozen=True, slots=True)
class StrippedHeader:
    """The ``(target, timestamp)`` pair a retarget needs from a header."""

    target: int
    timestamp: int

    def to_dict(self) -> dict[str, Any]:
        return {"target": f"{self.target:#010x}", "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StrippedHeader:
        return cls(target=_parse_int(data, "target"), timestamp=_parse_int(data, "timestamp"))


@dataclass(frozen=True, slots=True)
class Header:
    height: int
    timestamp: int  # milliseconds
    target: int  # compact

    def strip(self) -> StrippedHeader:
        return StrippedHeader(target=self.target, timestamp=self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {"height": self.height, "timestamp": self.timestamp, "target": f"{self.target:#010x}"}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Header:
        height = _parse_int(data, "height")
        if height < 0:
            raise HeaderError("Header height must be non-negative")
        return cls(height=height, timestamp=_parse_int(data, "timestamp"), target=_parse_int(data, "target"))


WindowEntry = Union[Header, StrippedHeader]


def parse_headers(raw: Any) -> list[WindowEntry]:
    if isinstance(raw, dict):
        raw = raw.get("headers")
    if not isinstance(raw, list):
        raise HeaderError("Expected a list of headers")
    entries: list[WindowEntry] = []
    for item in raw:
        if not isinstance(item, dict):
            raise HeaderError("Header entries must be objects")
        if "height" in item:
            entries.append(Header.from_dict(item))
        else:
            entries.append(StrippedHeader.from_dict(item))
    return entries


def load_headers(path: Path) -> list[WindowEntry]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise HeaderError(f"Cannot read header file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise HeaderError(f"Header file {path} is not valid JSON") from exc
    return parse_headers(raw)
