"""
ABI Encoding Test Suite
Constructor-argument type inference, explicit type annotations and
function-call encoding.

Usage:  pytest tests/test_encoding.py
"""

from __future__ import annotations

import pytest

from zerokey.encoding import (
    canonical_signature,
    encode_constructor_args,
    encode_function_call,
    infer_abi_type,
    parse_function_signature,
    resolve_arg_types,
)
from zerokey.errors import ValidationError

from conftest import IMPL, SAFE


def word(hex_digits: str) -> str:
    return hex_digits.rjust(64, "0")


# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("value, expected", [
    (SAFE, "address"),
    ("hello", "string"),
    ("0x1234", "string"),
    (True, "bool"),
    (False, "bool"),
    (5, "uint256"),
    (2.0, "uint256"),
    (None, "bytes32"),
    ([1, 2], "bytes32"),
])
def test_infer_abi_type(value, expected):
    assert infer_abi_type(value) == expected


def test_declared_types_win_and_none_falls_back():
    assert resolve_arg_types([7, SAFE], ["uint8", None]) == ["uint8", "address"]


def test_declared_types_length_mismatch():
    with pytest.raises(ValidationError) as exc:
        resolve_arg_types([1, 2], ["uint256"])
    assert exc.value.field == "constructorArgTypes"


# ---------------------------------------------------------------------------
# Constructor args
# ---------------------------------------------------------------------------

def test_encode_address_and_uint():
    encoded = encode_constructor_args([SAFE, 42])
    assert encoded == word(SAFE[2:].lower()) + word("2a")
    assert not encoded.startswith("0x")


def test_encode_bool_is_not_treated_as_integer_type():
    # bool is encoded as bool, which happens to share the 1-word layout
    assert encode_constructor_args([True]) == word("1")


def test_encode_string_is_dynamic():
    encoded = encode_constructor_args(["hi"])
    assert encoded[:64] == word("20")
    assert encoded[64:128] == word("2")
    assert encoded[128:].startswith("6869")


def test_explicit_integer_type_coerces_numeric_strings():
    assert encode_constructor_args(["1000", "0x10"], ["uint256", "uint256"]) == (
        word("3e8") + word("10")
    )


def test_explicit_bytes_type_decodes_hex():
    assert encode_constructor_args(["0x" + "ab" * 32], ["bytes32"]) == "ab" * 32


def test_unencodable_values_raise_validation_error():
    with pytest.raises(ValidationError):
        encode_constructor_args(["not-a-number"], ["uint256"])
    with pytest.raises(ValidationError):
        encode_constructor_args([-1], ["uint256"])
    with pytest.raises(ValidationError):
        encode_constructor_args([1.5], ["uint256"])


# ---------------------------------------------------------------------------
# Function calls
# ---------------------------------------------------------------------------

def test_parse_signature_with_keyword_and_names():
    name, types = parse_function_signature(
        "function upgradeToAndCall(address newImplementation, bytes data)"
    )
    assert name == "upgradeToAndCall"
    assert types == ["address", "bytes"]


def test_parse_signature_keeps_tuple_params_whole():
    assert canonical_signature("f((uint256,address) item, bool flag)") == (
        "f((uint256,address),bool)"
    )
    assert parse_function_signature("initialize()") == ("initialize", [])


def test_invalid_selector_raises():
    with pytest.raises(ValidationError):
        parse_function_signature("upgradeTo")


def test_encode_upgrade_to():
    data = encode_function_call("upgradeTo(address)", [IMPL])
    assert data == "0x3659cfe6" + word(IMPL[2:].lower())


def test_encode_upgrade_to_and_call_selector():
    data = encode_function_call("upgradeToAndCall(address,bytes)", [IMPL, "0x"])
    assert data.startswith("0x4f1ef286")
    # address word, offset word, zero-length bytes word
    assert len(data) == 2 + 8 + 64 * 3


def test_argument_count_mismatch():
    with pytest.raises(ValidationError):
        encode_function_call("upgradeTo(address)", [IMPL, "0x"])
