"""CBOR encoding format with canonical, deterministic output."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone
from typing import IO, Any, Callable

import cbor2

__all__ = ["Format", "cbor_marshal", "cbor_unmarshal", "DEFAULT_CBOR_FORMAT", "CBOR_FORMATS"]


@dataclass(frozen=True)
class Format:
    """A pair of functions to write values to a stream and read them from bytes."""

    marshal: Callable[[IO[bytes], Any], None]
    unmarshal: Callable[[bytes], Any]


def cbor_marshal(stream: IO[bytes], value: Any) -> None:
    """Write ``value`` as canonical CBOR; datetimes become tag-1 epoch timestamps."""
    cbor2.dump(
        value,
        stream,
        canonical=True,
        datetime_as_timestamp=True,
        timezone=timezone.utc,
    )


def cbor_unmarshal(data: bytes) -> Any:
    """Decode one CBOR value from ``data``."""
    return cbor2.loads(data)


DEFAULT_CBOR_FORMAT = Format(marshal=cbor_marshal, unmarshal=cbor_unmarshal)

CBOR_FORMATS: dict[str, Format] = {
    "application/cbor": DEFAULT_CBOR_FORMAT,
    "cbor": DEFAULT_CBOR_FORMAT,
}