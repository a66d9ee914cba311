from .shared import printf
from .slots import EMPTY, MIN_TABLE_SIZE, TOMBSTONE, is_filled, short_hash7, tag_name
from .table import Table


def dump_table(table: Table, name: str):
    printf("== {0:s} ==\n", name)
    printf(
        "capacity {0:d}, count {1:d}, ndel {2:d}, maxprobe {3:d}, idxfloor {4:d}\n",
        table.capacity,
        table.count,
        table.ndel,
        table.maxprobe,
        table.idxfloor,
    )

    for index in range(table.capacity):
        dump_slot(table, index)


def dump_slot(table: Table, index: int):
    printf("{0:04d} ", index)

    tag = table.slots[index]
    if is_filled(tag):
        printf(
            "{0:<9s} {1:#04x} {2!r} => {3!r}\n",
            tag_name(tag),
            tag,
            table.keys_[index],
            table.vals[index],
        )
    else:
        printf("{0:s}\n", tag_name(tag))


def verify_table(table: Table):
    size = table.capacity
    assert len(table.keys_) == size == len(table.vals), (
        size,
        len(table.keys_),
        len(table.vals),
    )
    # capacity 0 only after Table.free()
    assert size == 0 or (size >= MIN_TABLE_SIZE and size & (size - 1) == 0), size

    count = 0
    ndel = 0
    mask = size - 1
    for index, tag in enumerate(table.slots):
        if tag == EMPTY:
            continue
        if tag == TOMBSTONE:
            ndel += 1
            continue
        assert is_filled(tag), (index, tag)

        key = table.keys_[index]
        hsh = table.hasher(key)
        assert tag == short_hash7(hsh), (index, tag, key)
        assert index >= table.idxfloor, (index, table.idxfloor)

        probe = (index - hsh) & mask
        assert probe <= table.maxprobe, (key, probe, table.maxprobe)
        assert table.find_index(key) == index, (key, index)
        count += 1

    assert count == table.count, (count, table.count)
    assert ndel == table.ndel, (ndel, table.ndel)
    assert count + ndel <= size
