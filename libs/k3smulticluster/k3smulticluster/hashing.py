"""
Deterministic short codes for DNS-safe identifiers.
"""

import hashlib


SHORT_CODE_LENGTH = 7

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36_encode(data: bytes) -> str:
    """Encode bytes as a big-endian base36 number, keeping leading zero bytes as '0'."""
    number = int.from_bytes(data, "big")
    digits = []
    while number > 0:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    for byte in data:
        if byte != 0:
            break
        digits.append("0")
    return "".join(reversed(digits))


def to_base36_hash(value: str) -> str:
    """
    Hash a string to a lowercase alphanumeric token.

    The SHA-224 digest is converted to base36 to keep the token short while
    staying DNS label safe.
    """
    digest = hashlib.sha224(value.encode("utf-8")).digest()
    return _base36_encode(digest).lower()


def to_base36_hash_len(value: str, length: int = SHORT_CODE_LENGTH) -> str:
    """
    Hash a string and truncate the token to the given length.

    Truncation trades uniqueness for brevity, so the result must not be used
    as a unique key over unbounded inputs.

    Raises:
        ValueError: If length is negative
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    return to_base36_hash(value)[:length]
