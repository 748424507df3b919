"""
ABI Encoding Helpers
Constructor-argument type inference and function-call encoding.

Inference is a convenience default, not a substitute for a compiler ABI:
a numeric string meant as a decimal literal is indistinguishable from
text. Callers that care pass explicit per-argument types, which always win.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Sequence

from eth_abi import encode as abi_encode
from eth_abi.exceptions import ABITypeError, EncodingError, ParseError
from eth_utils import function_signature_to_4byte_selector

from zerokey.codec import hex_to_bytes, is_address, to_checksum
from zerokey.errors import ValidationError

SIGNATURE_PATTERN = re.compile(
    r"^\s*(?:function\s+)?([A-Za-z_$][A-Za-z0-9_$]*)\s*\((.*)\)\s*$",
    re.DOTALL,
)
INTEGER_TYPE = re.compile(r"^u?int(\d*)$")
BYTES_TYPE = re.compile(r"^bytes(\d*)$")
ARRAY_SUFFIX = re.compile(r"\[\d*\]$")


# ---------------------------------------------------------------------------
# Type inference
# ---------------------------------------------------------------------------

def infer_abi_type(value: Any) -> str:
    """
    Guess an ABI type for a primitive constructor argument.

    Precedence: address-shaped str, other str, bool, number, then an
    opaque bytes32 fallback. bool is tested before int because bool is
    an int subtype in Python.
    """
    if isinstance(value, str):
        return "address" if is_address(value) else "string"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "uint256"
    return "bytes32"


def resolve_arg_types(
    args: Sequence[Any],
    declared: Optional[Sequence[Optional[str]]] = None,
) -> list[str]:
    if declared is None:
        return [infer_abi_type(a) for a in args]
    if len(declared) != len(args):
        raise ValidationError(
            f"Expected {len(args)} constructor argument types, got {len(declared)}",
            field="constructorArgTypes",
            value=list(declared),
        )
    return [
        t.strip() if t else infer_abi_type(a)
        for a, t in zip(args, declared)
    ]


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------

def coerce_abi_value(abi_type: str, value: Any) -> Any:
    """Convert JSON/YAML-friendly values into what eth_abi expects."""
    if ARRAY_SUFFIX.search(abi_type) and isinstance(value, (list, tuple)):
        element_type = ARRAY_SUFFIX.sub("", abi_type)
        return [coerce_abi_value(element_type, v) for v in value]

    if abi_type == "address":
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        return to_checksum(value, field="address argument")

    if INTEGER_TYPE.match(abi_type):
        if isinstance(value, str):
            try:
                text = value.strip()
                return int(text, 16) if text.lower().startswith("0x") else int(text)
            except ValueError:
                raise ValidationError(
                    f"Cannot encode {value!r} as {abi_type}",
                    field="argument", value=value,
                ) from None
        if isinstance(value, float):
            if not value.is_integer():
                raise ValidationError(
                    f"Cannot encode non-integral {value!r} as {abi_type}",
                    field="argument", value=value,
                )
            return int(value)
        return value

    if BYTES_TYPE.match(abi_type) and isinstance(value, str):
        return hex_to_bytes(value, field="bytes argument")

    if abi_type == "bool" and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"

    return value


def encode_arguments(types: Sequence[str], values: Sequence[Any]) -> bytes:
    try:
        return abi_encode(list(types), list(values))
    except (EncodingError, ParseError, ABITypeError, TypeError, OverflowError) as exc:
        raise ValidationError(
            f"Failed to ABI-encode arguments as ({','.join(types)}): {exc}",
            field="arguments",
            value=[repr(v) for v in values],
        ) from exc


def encode_constructor_args(
    args: Sequence[Any],
    declared_types: Optional[Sequence[Optional[str]]] = None,
) -> str:
    """ABI-encode constructor args; returns hex text without a 0x prefix."""
    types = resolve_arg_types(args, declared_types)
    values = [coerce_abi_value(t, v) for t, v in zip(types, args)]
    return encode_arguments(types, values).hex()


# ---------------------------------------------------------------------------
# Function calls
# ---------------------------------------------------------------------------

def _split_params(params: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for ch in params:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += ch
    parts.append(current)
    return [p.strip() for p in parts if p.strip()]


def parse_function_signature(signature: str) -> tuple[str, list[str]]:
    """
    Split ``name(type,...)`` into its name and declared parameter types.

    Accepts an optional leading ``function`` and parameter names, e.g.
    ``function upgradeToAndCall(address newImpl, bytes data)``.
    """
    match = SIGNATURE_PATTERN.match(signature or "")
    if not match:
        raise ValidationError(
            f"Invalid function selector: {signature!r}",
            field="functionSelector", value=signature,
        )
    name, params = match.group(1), match.group(2)
    types = [p.split()[0] for p in _split_params(params)]
    return name, types


def canonical_signature(signature: str) -> str:
    name, types = parse_function_signature(signature)
    return f"{name}({','.join(types)})"


def encode_function_call(signature: str, args: Sequence[Any]) -> str:
    """Return 0x-prefixed calldata: 4-byte selector followed by the args."""
    name, types = parse_function_signature(signature)
    if len(args) != len(types):
        raise ValidationError(
            f"{name} expects {len(types)} arguments, got {len(args)}",
            field="upgradeArgs", value=len(args),
        )
    selector = function_signature_to_4byte_selector(f"{name}({','.join(types)})")
    values = [coerce_abi_value(t, v) for t, v in zip(types, args)]
    return "0x" + selector.hex() + encode_arguments(types, values).hex()
