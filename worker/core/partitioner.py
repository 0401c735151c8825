"""Routing of intermediate keys to reduce buckets."""

from typing import Any

FNV32_OFFSET_BASIS = 0x811C9DC5
FNV32_PRIME = 0x01000193


def ihash(key: str) -> int:
    """
    32-bit FNV-1a hash of the UTF-8 encoded key, masked to 31 bits.

    Python's built-in `hash` is salted per process and must not be used
    here: every worker has to agree on the bucket of every key.
    """
    h = FNV32_OFFSET_BASIS
    for byte in key.encode("utf-8"):
        h ^= byte
        h = (h * FNV32_PRIME) & 0xFFFFFFFF
    return h & 0x7FFFFFFF


def bucket(key: Any, num_buckets: int) -> int:
    """
    Reduce bucket in [0, num_buckets) for an intermediate key.

    Non-string keys are hashed through their `str()` form.

    Raises:
        ValueError: If num_buckets is not positive.
    """
    if num_buckets <= 0:
        raise ValueError(f"num_buckets must be positive, got {num_buckets}")
    if not isinstance(key, str):
        key = str(key)
    return ihash(key) % num_buckets
