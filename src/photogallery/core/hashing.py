"""Content fingerprints used by the resource monitors."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence


def fingerprint(value: str | Sequence[str]) -> str:
    """Return the SHA-512 hex digest of a string or an ordered sequence of strings.

    Sequence elements are length-prefixed so that element boundaries are part
    of the fingerprint: ``["ab", "c"]`` and ``["a", "bc"]`` hash differently.

    Args:
        value: The text, or the ordered parts, to fingerprint.

    Returns:
        Hexadecimal digest string.
    """
    digest = hashlib.sha512()
    if isinstance(value, str):
        digest.update(value.encode("utf-8"))
        return digest.hexdigest()

    for part in value:
        encoded = part.encode("utf-8")
        digest.update(len(encoded).to_bytes(8, "big"))
        digest.update(encoded)
    return digest.hexdigest()
