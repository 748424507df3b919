"""
Address Codec
Pure helpers shared by the proposal builder and the policy validator.

Validates and normalises 160-bit account addresses, and computes the
Keccak-256 content hashes that bind a stored proposal to its intent.
"""

from __future__ import annotations

import json
import re
from typing import Any, Union

from eth_utils import decode_hex, encode_hex, keccak, to_checksum_address

from zerokey.errors import ValidationError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ZERO_ADDRESS = "0x" + "0" * 40

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]*$")


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def is_address(value: Any) -> bool:
    """True if value is a 0x-prefixed 40-hex-digit string (any case)."""
    return isinstance(value, str) and ADDRESS_PATTERN.match(value) is not None


def is_zero_address(value: Any) -> bool:
    return is_address(value) and int(value, 16) == 0


def to_checksum(value: Any, field: str = "address") -> str:
    """Return the canonical checksum-cased form. Raises ValidationError."""
    if not is_address(value):
        raise ValidationError(f"Invalid {field}", field=field, value=value)
    return to_checksum_address(value)


def addresses_equal(a: Any, b: Any) -> bool:
    return is_address(a) and is_address(b) and a.lower() == b.lower()


# ---------------------------------------------------------------------------
# Hex and hashing
# ---------------------------------------------------------------------------

def is_hex_data(value: Any) -> bool:
    return isinstance(value, str) and HEX_PATTERN.match(value) is not None


def hex_to_bytes(value: Union[str, bytes], field: str = "data") -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not is_hex_data(value) or len(value) % 2:
        raise ValidationError(f"Invalid hex {field}", field=field, value=value)
    return decode_hex(value)


def keccak_hex(value: Union[str, bytes]) -> str:
    """Keccak-256 of raw bytes, or of the UTF-8 text of a str."""
    data = value.encode("utf-8") if isinstance(value, str) else value
    return encode_hex(keccak(data))


def canonical_json(obj: Any) -> str:
    """Sorted-key, whitespace-free, ASCII-only JSON text used as a hash input."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


def content_hash(obj: Any) -> str:
    return keccak_hex(canonical_json(obj))
