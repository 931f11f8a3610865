"""
Deterministic encoding primitives for ledger commitments.

Used for the snapshot commitment and for deriving referral codes. The encoding
must be byte-identical across runs and hosts, so floats and non-str keys are
refused outright.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

DOMAIN_PREFIX = b"fracrewards:"


def _check_canonical(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, str):
        # Lone surrogates have no UTF-8 encoding.
        if any(0xD800 <= ord(ch) <= 0xDFFF for ch in value):
            raise TypeError("surrogate code points are not allowed in canonical encoding")
        return
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
            _check_canonical(k)
            _check_canonical(v)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _check_canonical(item)


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON: UTF-8, sorted keys, no whitespace, no NaN, no floats.
    """
    _check_canonical(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    Domain separation prefix ``fracrewards:<label>:v<version>\\x00``.

    ASCII-only and NUL-terminated so that concatenation stays unambiguous.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    try:
        label_bytes = label.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError("label must be ASCII") from exc
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return DOMAIN_PREFIX + label_bytes + b":v" + str(version).encode("ascii") + b"\x00"
