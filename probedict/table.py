from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator

from .hashing import Hasher, KeyEquals, default_hash, keys_equal
from .shared import trace
from .slots import (
    EMPTY,
    MIN_TABLE_SIZE,
    TOMBSTONE,
    hash_index,
    is_filled,
    table_size,
)


MAX_ALLOWED_PROBE = 16
MAX_PROBE_SHIFT = 6
LARGE_TABLE_COUNT = 64000


@dataclass(frozen=True)
class Found:
    index: int


@dataclass(frozen=True)
class Vacant:
    index: int
    sh: int


InsertPlan = Found | Vacant

Step = tuple[tuple[Any, Any], int]


_missing = object()


@dataclass(eq=False, repr=False)
class Table:
    """Open-addressing hash table with linear probing.

    Three index-aligned arrays hold the slot tags, keys and values. A tag is
    EMPTY, TOMBSTONE, or a filled marker carrying 7 bits of the key's hash.
    """

    slots: bytearray
    keys_: list[Any]
    vals: list[Any]
    ndel: int
    count: int
    age: int
    idxfloor: int
    maxprobe: int
    hasher: Hasher
    equals: KeyEquals

    def __init__(
        self,
        size_hint: int = 0,
        hasher: Hasher = default_hash,
        equals: KeyEquals = keys_equal,
    ) -> None:
        self.hasher = hasher
        self.equals = equals
        self._allocate(table_size(size_hint))
        self.ndel = 0
        self.count = 0
        self.age = 0
        self.idxfloor = 0
        self.maxprobe = 0

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[tuple[Any, Any]],
        hasher: Hasher = default_hash,
        equals: KeyEquals = keys_equal,
    ) -> "Table":
        table = cls(hasher=hasher, equals=equals)
        table.update(pairs)
        return table

    def _allocate(self, size: int):
        self.slots = bytearray(size)
        self.keys_ = [None] * size
        self.vals = [None] * size

    @property
    def capacity(self) -> int:
        return len(self.slots)

    # lookup

    def find_index(self, key: Any) -> int:
        if self.count == 0:
            return -1

        slots = self.slots
        keys = self.keys_
        mask = len(slots) - 1
        index, sh = hash_index(self.hasher(key), len(slots))

        for _ in range(self.maxprobe + 1):
            si = slots[index]
            if si == EMPTY:
                return -1
            if si == sh and self.equals(key, keys[index]):
                return index
            index = (index + 1) & mask

        return -1

    # insertion

    def plan_insert(self, key: Any) -> InsertPlan:
        hsh = self.hasher(key)

        while True:
            size = len(self.slots)
            if size == 0:
                self.rehash(MIN_TABLE_SIZE)
                index, sh = hash_index(hsh, len(self.slots))
                return Vacant(index, sh)

            plan = self._probe_for_insert(key, hsh)
            if plan is not None:
                return plan

            # no free slot within the extended scan window
            trace("probe limit hit for {0!r}, growing from {1:d}", key, size)
            self.rehash(size * 2)

    def _probe_for_insert(self, key: Any, hsh: int) -> InsertPlan | None:
        slots = self.slots
        keys = self.keys_
        size = len(slots)
        mask = size - 1
        index, sh = hash_index(hsh, size)

        avail = -1
        probe = 0
        while True:
            si = slots[index]
            if si == EMPTY:
                return Vacant(avail if avail >= 0 else index, sh)
            if si == TOMBSTONE:
                if avail < 0:
                    avail = index
            elif si == sh and self.equals(key, keys[index]):
                return Found(index)

            index = (index + 1) & mask
            probe += 1
            if probe > self.maxprobe:
                break

        if avail >= 0:
            return Vacant(avail, sh)

        maxallowed = max(MAX_ALLOWED_PROBE, size >> MAX_PROBE_SHIFT)
        while probe < maxallowed:
            if not is_filled(slots[index]):
                self.maxprobe = probe
                return Vacant(index, sh)
            index = (index + 1) & mask
            probe += 1

        return None

    def insert_at(self, key: Any, value: Any, plan: InsertPlan):
        match plan:
            case Found(index):
                self.vals[index] = value
                self.age += 1

            case Vacant(index, sh):
                slots = self.slots
                if slots[index] == TOMBSTONE:
                    self.ndel -= 1
                else:
                    assert slots[index] == EMPTY, (index, slots[index])

                slots[index] = sh
                self.keys_[index] = key
                self.vals[index] = value
                self.count += 1
                self.age += 1
                if index < self.idxfloor:
                    self.idxfloor = index

                size = len(slots)
                if (self.count + self.ndel) * 3 > size * 2:
                    if self.count > LARGE_TABLE_COUNT:
                        target = self.count * 3 // 2
                    else:
                        target = self.count * 2
                    self.rehash(max(target, size))

            case _:
                raise Exception("Wrong insert plan", plan)

    # deletion

    def delete_at(self, index: int):
        slots = self.slots
        keys = self.keys_
        vals = self.vals
        mask = len(slots) - 1
        assert is_filled(slots[index]), (index, slots[index])

        ndel = 1
        if slots[(index + 1) & mask] == EMPTY:
            # nothing probes past an empty slot, so the deleted slot and the
            # tombstones right before it can go back to empty
            while True:
                ndel -= 1
                slots[index] = EMPTY
                keys[index] = None
                vals[index] = None
                index = (index - 1) & mask
                if slots[index] != TOMBSTONE:
                    break
            if ndel < 0:
                trace("collapsed {0:d} tombstones", -ndel)
        else:
            slots[index] = TOMBSTONE
            keys[index] = None
            vals[index] = None

        self.ndel += ndel
        self.count -= 1
        self.age += 1

    # resizing

    def rehash(self, newsz: int):
        olds = self.slots
        oldk = self.keys_
        oldv = self.vals
        oldsz = len(olds)

        # never shrink below what keeps the live entries under the load limit
        newsz = table_size(max(newsz, self.count * 3 // 2 + 1))
        self.age += 1
        self.idxfloor = 0

        if self.count == 0:
            self._allocate(newsz)
            self.ndel = 0
            self.maxprobe = 0
            trace("rehash {0:d} -> {1:d} (empty)", oldsz, newsz)
            return

        slots = bytearray(newsz)
        ks: list[Any] = [None] * newsz
        vs: list[Any] = [None] * newsz
        mask = newsz - 1
        hasher = self.hasher

        count = 0
        maxprb = 0
        for i, si in enumerate(olds):
            if not is_filled(si):
                continue

            k = oldk[i]
            index0 = index = hasher(k) & mask
            while slots[index] != EMPTY:
                index = (index + 1) & mask

            probe = (index - index0) & mask
            if probe > maxprb:
                maxprb = probe

            slots[index] = si
            ks[index] = k
            vs[index] = oldv[i]
            count += 1

        assert count == self.count, (count, self.count)

        self.slots = slots
        self.keys_ = ks
        self.vals = vs
        self.ndel = 0
        self.maxprobe = maxprb
        trace(
            "rehash {0:d} -> {1:d} ({2:d} live, max probe {3:d})",
            oldsz,
            newsz,
            count,
            maxprb,
        )

    def free(self):
        """Release all storage, leaving a table with capacity 0.

        This is the one state where capacity is not a power of two of at
        least 16. Lookups and deletes see an empty table, and the next insert
        allocates the minimum size again.
        """
        self._allocate(0)
        self.ndel = 0
        self.count = 0
        self.age += 1
        self.idxfloor = 0
        self.maxprobe = 0

    # iteration

    def skip_deleted(self, i: int) -> int:
        slots = self.slots
        for index in range(i, len(slots)):
            if is_filled(slots[index]):
                return index
        return -1

    def skip_deleted_floor(self) -> int:
        index = self.skip_deleted(self.idxfloor)
        if index >= 0:
            self.idxfloor = index
        return index

    def iterate(self, state: int | None = None) -> Step | None:
        if state is None:
            index = self.skip_deleted_floor()
        else:
            index = self.skip_deleted(state)

        if index < 0:
            return None
        return (self.keys_[index], self.vals[index]), index + 1

    def __iter__(self) -> Iterator[Any]:
        step = self.iterate()
        while step is not None:
            (key, _), state = step
            yield key
            step = self.iterate(state)

    def keys(self) -> list[Any]:
        return [key for key, _ in self.items()]

    def values(self) -> list[Any]:
        return [value for _, value in self.items()]

    def items(self) -> list[tuple[Any, Any]]:
        result = []
        step = self.iterate()
        while step is not None:
            pair, state = step
            result.append(pair)
            step = self.iterate(state)
        return result

    # public operations

    def get(self, key: Any, default: Any = None) -> Any:
        """Return the value for `key`, or `default` when it is absent.

        A missing key and a stored None look alike here; use `table[key]`
        to get a KeyError instead.
        """
        index = self.find_index(key)
        if index < 0:
            return default
        return self.vals[index]

    def get_key(self, key: Any, default: Any = None) -> Any:
        index = self.find_index(key)
        if index < 0:
            return default
        return self.keys_[index]

    def has(self, key: Any) -> bool:
        return self.find_index(key) >= 0

    def set(self, key: Any, value: Any):
        self.insert_at(key, value, self.plan_insert(key))

    def delete(self, key: Any) -> bool:
        index = self.find_index(key)
        if index < 0:
            return False
        self.delete_at(index)
        return True

    def pop(self, key: Any, default: Any = _missing) -> Any:
        index = self.find_index(key)
        if index < 0:
            if default is _missing:
                raise KeyError(key)
            return default

        value = self.vals[index]
        self.delete_at(index)
        return value

    def clear(self):
        size = len(self.slots)
        self.slots[:] = bytes(size)
        self.keys_[:] = [None] * size
        self.vals[:] = [None] * size
        self.ndel = 0
        self.count = 0
        self.age += 1
        self.idxfloor = 0
        self.maxprobe = 0

    def is_empty(self) -> bool:
        return self.count == 0

    def update(self, other: "Table | Iterable[tuple[Any, Any]]"):
        if isinstance(other, Table):
            pairs: Iterable[tuple[Any, Any]] = other.items()
        elif hasattr(other, "keys"):
            pairs = [(key, other[key]) for key in other.keys()]
        else:
            pairs = other

        for key, value in pairs:
            self.set(key, value)

    def copy(self) -> "Table":
        table = Table(hasher=self.hasher, equals=self.equals)
        table.slots = bytearray(self.slots)
        table.keys_ = list(self.keys_)
        table.vals = list(self.vals)
        table.ndel = self.ndel
        table.count = self.count
        table.idxfloor = self.idxfloor
        table.maxprobe = self.maxprobe
        return table

    def __len__(self) -> int:
        return self.count

    def __contains__(self, key: Any) -> bool:
        return self.has(key)

    def __getitem__(self, key: Any) -> Any:
        index = self.find_index(key)
        if index < 0:
            raise KeyError(key)
        return self.vals[index]

    def __setitem__(self, key: Any, value: Any):
        self.set(key, value)

    def __delitem__(self, key: Any):
        if not self.delete(key):
            raise KeyError(key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        if self.count != other.count:
            return False

        for key, value in self.items():
            index = other.find_index(key)
            if index < 0 or other.vals[index] != value:
                return False
        return True

    def __repr__(self) -> str:
        pairs = ", ".join(f"{key!r}: {value!r}" for key, value in self.items())
        return f"Table({{{pairs}}})"


def merge(d1: Table, d2: Table) -> Table:
    result = Table(hasher=d1.hasher, equals=d1.equals)
    result.update(d1)
    result.update(d2)
    return result


def merge_with_into(
    combine: Callable[[Any, Any], Any], d1: Table, d2: Table
) -> Table:
    for key, value in d2.items():
        index = d1.find_index(key)
        if index >= 0:
            d1.vals[index] = combine(d1.vals[index], value)
            d1.age += 1
        else:
            d1.set(key, value)
    return d1


def merge_with(combine: Callable[[Any, Any], Any], d1: Table, d2: Table) -> Table:
    return merge_with_into(combine, d1.copy(), d2)
