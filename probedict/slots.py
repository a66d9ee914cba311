MIN_TABLE_SIZE = 16

# slot tags
EMPTY = 0
TOMBSTONE = 127
FILLED_BIT = 0x80

HASH_MASK = 0xFFFF_FFFF_FFFF_FFFF


def table_size(n: int) -> int:
    if n < MIN_TABLE_SIZE:
        return MIN_TABLE_SIZE
    return 1 << (n - 1).bit_length()


def short_hash7(hsh: int) -> int:
    # 7 most significant bits of the 64-bit hash, tagged as filled
    return ((hsh & HASH_MASK) >> 57) | FILLED_BIT


def hash_index(hsh: int, size: int) -> tuple[int, int]:
    assert size & (size - 1) == 0, size
    return hsh & (size - 1), short_hash7(hsh)


def is_filled(tag: int) -> bool:
    return tag & FILLED_BIT != 0


def tag_name(tag: int) -> str:
    if tag == EMPTY:
        return "EMPTY"
    if tag == TOMBSTONE:
        return "TOMBSTONE"
    if is_filled(tag):
        return "FILLED"
    raise Exception("Wrong slot tag", tag)
