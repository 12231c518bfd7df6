"""Typed value codec for automation variables.

Azure Automation stores every variable value as a string holding a JSON-ish
serialization of the typed value:

- int:       ``1234``
- bool:      ``true`` / ``false``
- datetime:  ``"\\/Date(1672671845000)\\/"`` (legacy ASP.NET JSON date, quotes included)
- string:    ``"hello \\"world\\""`` (JSON-quoted)

Each kind has its own codec. ``decode(encode(x)) == x`` holds for every valid
value, with datetimes truncated to millisecond precision.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime, timedelta, timezone
from enum import Enum
from typing import Any, ClassVar

from automation_provisioner.core.errors import InvalidTimeFormatError, ValueDecodeError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_ONE_MS = timedelta(milliseconds=1)

_DATE_TOKEN = re.compile(r'"\\/Date\((-?[0-9]+)\)\\/"')
_INT_LITERAL = re.compile(r"[+-]?[0-9]+")
_RFC3339 = re.compile(
    r"(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"[Tt](?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})"
)


class ValueKind(str, Enum):
    INT = "int"
    BOOL = "bool"
    DATETIME = "datetime"
    STRING = "string"


def infer_kind(encoded: str | None) -> str:
    """Classify an encoded value the way the service would have produced it.

    Only used to explain decode failures; returns ``"unknown"`` for anything
    that matches no kind.
    """
    if encoded is None:
        return "null"
    if _DATE_TOKEN.fullmatch(encoded):
        return ValueKind.DATETIME.value
    if _is_json_string(encoded):
        return ValueKind.STRING.value
    if encoded in ("true", "false"):
        return ValueKind.BOOL.value
    if _INT_LITERAL.fullmatch(encoded):
        return ValueKind.INT.value
    return "unknown"


def _is_json_string(encoded: str) -> bool:
    if len(encoded) < 2 or not (encoded.startswith('"') and encoded.endswith('"')):
        return False
    try:
        return isinstance(json.loads(encoded), str)
    except ValueError:
        return False


class ValueCodec:
    """Encode/decode contract shared by all kinds."""

    kind: ClassVar[ValueKind]

    def encode(self, value: Any) -> str:
        raise NotImplementedError

    def decode(self, encoded: str) -> Any:
        raise NotImplementedError

    def _mismatch(self, encoded: str) -> ValueDecodeError:
        return ValueDecodeError(encoded, expected=self.kind.value, actual=infer_kind(encoded))


class IntCodec(ValueCodec):
    kind = ValueKind.INT

    def encode(self, value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"int variable value must be an int, got {type(value).__name__}")
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValueError(f"int variable value {value} is outside the 64-bit range")
        return str(value)

    def decode(self, encoded: str) -> int:
        if not _INT_LITERAL.fullmatch(encoded):
            raise self._mismatch(encoded)
        value = int(encoded)
        if not INT64_MIN <= value <= INT64_MAX:
            raise self._mismatch(encoded)
        return value


class BoolCodec(ValueCodec):
    kind = ValueKind.BOOL

    def encode(self, value: Any) -> str:
        if not isinstance(value, bool):
            raise TypeError(f"bool variable value must be a bool, got {type(value).__name__}")
        return "true" if value else "false"

    def decode(self, encoded: str) -> bool:
        if encoded == "true":
            return True
        if encoded == "false":
            return False
        raise self._mismatch(encoded)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Fractions beyond microseconds are dropped.
    """
    m = _RFC3339.fullmatch(value) if isinstance(value, str) else None
    if m is None:
        raise InvalidTimeFormatError(value)

    offset = m["offset"]
    if offset in ("Z", "z"):
        tz = UTC
    else:
        sign = -1 if offset[0] == "-" else 1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        if hours > 23 or minutes > 59:
            raise InvalidTimeFormatError(value)
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    fraction = (m["fraction"] or "").ljust(6, "0")[:6]
    try:
        return datetime(
            int(m["year"]),
            int(m["month"]),
            int(m["day"]),
            int(m["hour"]),
            int(m["minute"]),
            int(m["second"]),
            int(fraction),
            tzinfo=tz,
        )
    except ValueError as e:
        raise InvalidTimeFormatError(value) from e


def format_timestamp(moment: datetime) -> str:
    """Render ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    utc = moment.astimezone(UTC)
    return (
        f"{utc.year:04d}-{utc.month:02d}-{utc.day:02d}"
        f"T{utc.hour:02d}:{utc.minute:02d}:{utc.second:02d}"
        f".{utc.microsecond // 1000:03d}Z"
    )


class DateTimeCodec(ValueCodec):
    kind = ValueKind.DATETIME

    def encode(self, value: Any) -> str:
        moment = parse_rfc3339(value)
        # Floored like format_timestamp, so pre-epoch values read back unchanged.
        millis = (moment - _EPOCH) // _ONE_MS
        return f'"\\/Date({millis})\\/"'

    def decode(self, encoded: str) -> str:
        m = _DATE_TOKEN.fullmatch(encoded)
        if m is None:
            raise self._mismatch(encoded)
        try:
            moment = _EPOCH + timedelta(milliseconds=int(m[1]))
        except OverflowError as e:
            raise self._mismatch(encoded) from e
        return format_timestamp(moment)


class StringCodec(ValueCodec):
    kind = ValueKind.STRING

    def encode(self, value: Any) -> str:
        if not isinstance(value, str):
            raise TypeError(f"string variable value must be a str, got {type(value).__name__}")
        return json.dumps(value, ensure_ascii=False)

    def decode(self, encoded: str) -> str:
        if not _is_json_string(encoded):
            raise self._mismatch(encoded)
        return json.loads(encoded)


_CODECS: dict[ValueKind, ValueCodec] = {
    codec.kind: codec for codec in (IntCodec(), BoolCodec(), DateTimeCodec(), StringCodec())
}


def codec_for(kind: ValueKind | str) -> ValueCodec:
    """Return the codec for *kind*."""
    return _CODECS[ValueKind(kind)]


def encode_value(kind: ValueKind | str, value: Any) -> str:
    return codec_for(kind).encode(value)


def decode_value(kind: ValueKind | str, encoded: str) -> Any:
    return codec_for(kind).decode(encoded)
