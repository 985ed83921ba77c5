"""
Last.fm API request signing.

api_sig = md5(<key><value> for every param except 'format', sorted by key, + secret)
See https://www.last.fm/api/authspec#_8-signing-calls
"""

from __future__ import annotations
import hashlib
from typing import Mapping

UNSIGNED_PARAMS = frozenset({"format"})


def sign(params: Mapping[str, object], secret: str) -> str:
    payload = "".join(
        f"{key}{params[key]}" for key in sorted(params) if key not in UNSIGNED_PARAMS
    )
    return hashlib.md5((payload + secret).encode("utf-8")).hexdigest()


def signed(params: Mapping[str, object], secret: str) -> dict[str, str]:
    """Return a copy of params (values as str) with api_sig attached."""
    out = {k: str(v) for k, v in params.items()}
    out["api_sig"] = sign(out, secret)
    return out
