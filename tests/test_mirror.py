from __future__ import annotations

import random

from app.schemas import (
    Bin,
    BinAddedEvent,
    BinDeletedEvent,
    BinUpdatedEvent,
    FillLevelUpdateEvent,
    InitialDataEvent,
)
from dashboard.mirror import BATTERY_FLOOR, BinMirror, demo_fleet
from datastore.bins import DEFAULT_FLEET


def _bins() -> list[Bin]:
    return [
        Bin(bin_id=3, location="C", fill_level=30),
        Bin(bin_id=1, location="A", fill_level=10),
        Bin(bin_id=2, location="B", fill_level=20),
    ]


def test_initial_data_replaces_everything() -> None:
    mirror = BinMirror([Bin(bin_id=9, location="stale")])

    changed = mirror.apply(InitialDataEvent(bins=_bins()))

    assert changed is True
    assert [item.bin_id for item in mirror.bins] == [1, 2, 3]
    assert 9 not in mirror


def test_bin_added_inserts_once() -> None:
    mirror = BinMirror(_bins())
    event = BinAddedEvent(bin=Bin(bin_id=7, location="X"))

    assert mirror.apply(event) is True
    assert mirror.apply(event) is False
    assert len(mirror) == 4
    assert mirror.bins[-1].bin_id == 7


def test_bin_updated_merges_and_is_idempotent() -> None:
    mirror = BinMirror(_bins())
    updated = mirror.get(2).model_copy(update={"fill_level": 95, "location": "B moved"})

    assert mirror.apply(BinUpdatedEvent(bin=updated)) is True
    assert mirror.get(2).fill_level == 95
    assert mirror.get(2).location == "B moved"
    assert mirror.apply(BinUpdatedEvent(bin=updated)) is False


def test_fill_level_update_only_touches_fill() -> None:
    mirror = BinMirror(_bins())
    before = mirror.get(1)

    assert mirror.apply(FillLevelUpdateEvent(bin_id=1, fill_level=55)) is True
    after = mirror.get(1)
    assert after.fill_level == 55
    assert after.location == before.location
    assert after.last_updated == before.last_updated
    assert mirror.apply(FillLevelUpdateEvent(bin_id=1, fill_level=55)) is False


def test_updates_for_unknown_bins_are_ignored() -> None:
    mirror = BinMirror(_bins())

    assert mirror.apply(FillLevelUpdateEvent(bin_id=42, fill_level=50)) is False
    assert mirror.apply(BinUpdatedEvent(bin=Bin(bin_id=42, location="?"))) is False
    assert mirror.apply(BinDeletedEvent(bin_id=42)) is False
    assert 42 not in mirror
    assert len(mirror) == 3


def test_bin_deleted_removes_entry() -> None:
    mirror = BinMirror(_bins())

    assert mirror.apply(BinDeletedEvent(bin_id=3)) is True
    assert [item.bin_id for item in mirror.bins] == [1, 2]


def test_mirror_holds_copies_of_event_payloads() -> None:
    source = Bin(bin_id=1, location="A", fill_level=10)
    mirror = BinMirror()
    mirror.apply(BinAddedEvent(bin=source))

    source.fill_level = 90

    assert mirror.get(1).fill_level == 10


def test_simulate_drift_stays_in_bounds() -> None:
    mirror = BinMirror(
        [
            Bin(bin_id=1, location="A", fill_level=0, battery_level=BATTERY_FLOOR),
            Bin(bin_id=2, location="B", fill_level=100, battery_level=21),
        ]
    )
    rng = random.Random(7)

    for _ in range(500):
        mirror.simulate_drift(rng)
        for item in mirror.bins:
            assert 0 <= item.fill_level <= 100
            assert item.battery_level >= BATTERY_FLOOR

    assert mirror.get(1).battery_level == BATTERY_FLOOR


def test_demo_fleet_jitters_default_fleet() -> None:
    fleet = demo_fleet(random.Random(1))

    assert [item.bin_id for item in fleet] == [row[0] for row in DEFAULT_FLEET]
    for item, row in zip(fleet, DEFAULT_FLEET):
        assert item.location == row[1]
        assert abs(item.fill_level - row[2]) <= 5
