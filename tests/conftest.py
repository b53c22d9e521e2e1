from itertools import count

import pytest

from prison_common.store import RecordStore


@pytest.fixture
def store() -> RecordStore:
    ids = count(1)
    return RecordStore(today=lambda: "2024-05-01", id_factory=lambda: f"id-{next(ids)}")
