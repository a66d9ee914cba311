from probedict.debug import verify_table
from probedict.slots import EMPTY, TOMBSTONE, is_filled
import probedict.table as table_module
from probedict.table import Found, Table, Vacant


def same_hash(value: int):
    def hasher(key) -> int:
        return value

    return hasher


def colliding_table(start: int, keys: str) -> Table:
    t = Table(hasher=same_hash(start))
    for i, key in enumerate(keys):
        t[key] = i
    return t


def test_collisions_probe_linearly():
    t = colliding_table(0, "abc")

    assert [t.keys_[i] for i in range(3)] == ["a", "b", "c"]
    # each insert went one slot further than the last
    assert t.maxprobe == 2
    assert t.find_index("c") == 2
    assert t.find_index("d") == -1
    verify_table(t)


def test_plan_insert():
    t = colliding_table(0, "ab")

    assert t.plan_insert("a") == Found(0)
    assert t.plan_insert("b") == Found(1)
    plan = t.plan_insert("c")
    assert isinstance(plan, Vacant)
    assert plan.index == 2


def test_tombstone_reused():
    t = colliding_table(0, "abc")

    t.delete("b")
    assert t.slots[1] == TOMBSTONE
    assert t.ndel == 1
    # should still reach keys past the tombstone
    assert t["c"] == 2

    t["d"] = 3
    assert t.keys_[1] == "d"
    assert is_filled(t.slots[1])
    assert t.ndel == 0
    verify_table(t)


def test_tombstones_collapse_before_empty():
    t = colliding_table(0, "abc")

    t.delete("b")
    assert t.ndel == 1

    # slot 3 is empty, so c and the tombstone before it are released
    t.delete("c")
    assert t.slots[2] == EMPTY
    assert t.slots[1] == EMPTY
    assert is_filled(t.slots[0])
    assert t.ndel == 0
    assert t["a"] == 0
    verify_table(t)


def test_tombstones_collapse_across_wraparound():
    t = colliding_table(15, "abc")
    assert t.find_index("a") == 15
    assert t.find_index("b") == 0
    assert t.find_index("c") == 1

    t.delete("a")
    t.delete("b")
    assert t.slots[15] == TOMBSTONE
    assert t.slots[0] == TOMBSTONE
    assert t.ndel == 2
    assert t["c"] == 2

    t.delete("c")
    assert t.ndel == 0
    assert len(t) == 0
    assert all(tag == EMPTY for tag in t.slots)
    verify_table(t)


def test_collapse_stops_at_filled_slot():
    t = colliding_table(14, "abc")

    t.delete("b")
    assert t.slots[15] == TOMBSTONE

    t.delete("c")
    assert t.slots[0] == EMPTY
    assert t.slots[15] == EMPTY
    assert is_filled(t.slots[14])
    assert t.ndel == 0
    assert t["a"] == 0
    verify_table(t)


def test_growth_when_probing_fails():
    t = Table(hasher=same_hash(0))
    keys = [f"k{i}" for i in range(17)]
    for i, key in enumerate(keys):
        t[key] = i

    # 17 keys on one probe chain only fit once the extended scan covers them
    assert t.capacity == 2048
    for i, key in enumerate(keys):
        assert t[key] == i
    verify_table(t)


def test_churn_does_not_grow():
    t = Table()
    for i in range(1000):
        t["k"] = i
        t.delete("k")

    assert t.capacity == 16
    assert t.ndel == 0

    for i in range(1000):
        t[i] = i
        del t[i]

    assert t.capacity == 16
    assert len(t) == 0


def test_tombstone_heavy_table_rebuilt_in_place():
    t = Table()
    for i in range(10):
        t[i] = i
    for i in range(0, 10, 2):
        t.delete(i)
    assert t.ndel == 5

    # six live plus five tombstones crosses the load limit
    t[10] = 10

    assert t.capacity == 16
    assert t.ndel == 0
    assert sorted(t.keys()) == [1, 3, 5, 7, 9, 10]
    verify_table(t)


def test_explicit_rehash():
    t = Table(size_hint=1000)
    assert t.capacity == 1024
    for key in "xyz":
        t[key] = key.upper()

    t.rehash(16)
    assert t.capacity == 16
    assert len(t) == 3
    for key in "xyz":
        assert t[key] == key.upper()
    verify_table(t)

    for i in range(20):
        t[i] = i
    # should not shrink below what the live entries need
    t.rehash(1)
    assert t.capacity == 64
    assert len(t) == 23
    verify_table(t)


def test_rehash_resets_scan_floor():
    t = Table()
    t[5] = "five"
    t[6] = "six"
    assert t.idxfloor == 0

    t.iterate()
    assert t.idxfloor == 5

    # inserting below the floor lowers it
    t[1] = "one"
    assert t.idxfloor == 1

    t.delete(1)
    assert t.idxfloor == 1
    assert t.iterate() == ((5, "five"), 6)
    assert t.idxfloor == 5

    t.rehash(32)
    assert t.idxfloor == 0
    assert t.capacity == 32


def fill_with_tombstones(t: Table):
    for i in range(40):
        t[i] = i
    for i in range(0, 10, 2):
        t.delete(i)
    for i in range(40, 43):
        t[i] = i


def test_load_growth_doubles_live_count():
    t = Table()
    fill_with_tombstones(t)

    # 38 live plus 5 tombstones crosses two thirds of 64
    assert t.capacity == 128
    assert t.ndel == 0
    verify_table(t)


def test_large_table_grows_by_smaller_multiplier(monkeypatch):
    monkeypatch.setattr(table_module, "LARGE_TABLE_COUNT", 0)

    t = Table()
    fill_with_tombstones(t)

    # count * 3 // 2 fits in the current 64 slots, so only tombstones go
    assert t.capacity == 64
    assert t.ndel == 0
    assert len(t) == 38
    for i in range(10, 43):
        assert t[i] == i
    verify_table(t)

    # without tombstones the table still grows when full enough
    for i in range(43, 50):
        t[i] = i
    assert t.capacity == 128
    verify_table(t)
