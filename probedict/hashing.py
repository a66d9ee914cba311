from typing import Any, Callable

from .slots import HASH_MASK


Hasher = Callable[[Any], int]
KeyEquals = Callable[[Any, Any], bool]


FNV_OFFSET_BASIS = 0xCBF2_9CE4_8422_2325
FNV_PRIME = 0x0000_0100_0000_01B3


def default_hash(key: Any) -> int:
    return hash(key) & HASH_MASK


def hash_string(key: str) -> int:
    """FNV-1a over the code points of `key`, kept to 64 bits.

    Unlike the built-in `hash`, the result is stable across processes.
    """
    hash = FNV_OFFSET_BASIS
    for ch in key:
        hash ^= ord(ch)
        hash = (hash * FNV_PRIME) & HASH_MASK
    return hash


def keys_equal(a: Any, b: Any) -> bool:
    return a is b or a == b
