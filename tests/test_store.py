import pytest

from prison_common.store import RecordStore
from tests.helpers import make_data


def test_add_assigns_next_s_no_and_today(store):
    store.add(make_data(convict_no="C-1"))
    records = store.add(make_data(convict_no="C-2"))
    third = store.add(make_data(convict_no="C-3"))[-1]

    assert [p.s_no for p in records] == [1, 2]
    assert third.s_no == 3
    assert third.status_update_date == "2024-05-01"
    assert len({p.id for p in store}) == 3


def test_next_s_no_follows_maximum_not_length(store):
    store.extend([make_data(), make_data()])
    first, second = store.records
    store.update(first.id, make_data(name="Renamed"))

    assert store.next_s_no() == 3
    assert store.get(first.id).name == "Renamed"
    assert store.get(first.id).s_no == first.s_no
    assert store.get(second.id) == second


def test_update_preserves_identity_and_refreshes_date():
    days = iter(["2024-01-01", "2024-02-02"])
    store = RecordStore(today=lambda: next(days), id_factory=lambda: "fixed")
    store.add(make_data())
    updated = store.update("fixed", make_data(name="Changed"))[0]

    assert updated.id == "fixed"
    assert updated.s_no == 1
    assert updated.name == "Changed"
    assert updated.status_update_date == "2024-02-02"


def test_update_unknown_id_raises(store):
    store.add(make_data())
    with pytest.raises(KeyError):
        store.update("missing", make_data())


def test_extend_numbers_batch_contiguously_and_keeps_dates(store):
    store.add(make_data())
    records = store.extend([make_data(), make_data()], status_update_dates=["2020-03-03", ""])

    assert [p.s_no for p in records] == [1, 2, 3]
    assert records[1].status_update_date == "2020-03-03"
    assert records[2].status_update_date == "2024-05-01"


def test_extend_rejects_mismatched_dates(store):
    with pytest.raises(ValueError):
        store.extend([make_data()], status_update_dates=["2020-01-01", "2020-01-02"])
    assert len(store) == 0


def test_previous_snapshot_is_untouched(store):
    before = store.add(make_data())
    store.add(make_data(convict_no="C-2"))

    assert len(before) == 1
    assert len(store.records) == 2
