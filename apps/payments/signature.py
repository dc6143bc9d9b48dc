"""
PayFast request signatures.

PayFast signs the parameter string in the order the fields were posted, so
payloads are handled as ordered ``(key, value)`` pairs. Never sort them.
"""
from __future__ import annotations

import hashlib
import hmac
from collections.abc import Iterable, Mapping
from urllib.parse import quote

SIGNATURE_FIELD = "signature"

Fields = Mapping[str, str | None] | Iterable[tuple[str, str | None]]


def _pairs(fields: Fields) -> list[tuple[str, str | None]]:
    if isinstance(fields, Mapping):
        return list(fields.items())
    return list(fields)


def encode_value(value: str) -> str:
    # Same output as JavaScript's encodeURIComponent, with spaces as "+".
    return quote(value.strip(), safe="!~*'()").replace("%20", "+")


def build_parameter_string(fields: Fields, passphrase: str | None = None) -> str:
    parts = [
        f"{key}={encode_value(str(value))}"
        for key, value in _pairs(fields)
        if key != SIGNATURE_FIELD and value is not None and value != ""
    ]
    parameter_string = "&".join(parts)
    if passphrase:
        parameter_string += f"&passphrase={encode_value(passphrase)}"
    return parameter_string


def generate_signature(fields: Fields, passphrase: str | None = None) -> str:
    parameter_string = build_parameter_string(fields, passphrase)
    return hashlib.md5(parameter_string.encode("utf-8")).hexdigest()


def verify_signature(fields: Fields, passphrase: str | None = None) -> bool:
    pairs = _pairs(fields)
    received = next((value for key, value in pairs if key == SIGNATURE_FIELD), None)
    if not received:
        return False
    expected = generate_signature(pairs, passphrase)
    return hmac.compare_digest(expected.encode("utf-8"), str(received).encode("utf-8"))
