"""
Tests for the SQLite storage layer (in-memory database).
"""

from datetime import date

import pytest
import pytest_asyncio

from temperature.database import (
    AlreadySubscribedError,
    Database,
    NotSubscribedError,
    TemperatureRecord,
)
from temperature.weather import Coordinate, Location, TemperatureSample


@pytest_asyncio.fixture
async def db():
    database = Database(":memory:")
    await database.connect()
    try:
        yield database
    finally:
        await database.close()


def _sample(description: str, value: float) -> TemperatureSample:
    return TemperatureSample(Location(description, (Coordinate(0.0, 0.0),)), value)


@pytest.mark.asyncio
async def test_save_and_read_temperatures(db):
    day = date(2024, 3, 9)

    saved = await db.save_temperatures([_sample("South", 4.25), _sample("North", -1.5)], day)

    assert len(saved) == 2
    records = await db.get_temperatures_by_date(day)
    assert records == [
        TemperatureRecord("North", 9, 3, 2024, -1.5),
        TemperatureRecord("South", 9, 3, 2024, 4.25),
    ]


@pytest.mark.asyncio
async def test_saving_same_day_twice_overwrites(db):
    day = date(2024, 3, 9)

    await db.save_temperatures([_sample("North", 1.0)], day)
    await db.save_temperatures([_sample("North", 2.0)], day)

    records = await db.get_all_temperatures()
    assert [r.temperature for r in records] == [2.0]


@pytest.mark.asyncio
async def test_all_temperatures_are_ordered_by_date(db):
    await db.save_temperatures([_sample("B", 2.0)], date(2024, 2, 1))
    await db.save_temperatures([_sample("A", 1.0)], date(2024, 1, 31))
    await db.save_temperatures([_sample("A", 3.0)], date(2024, 2, 1))

    records = await db.get_all_temperatures()

    assert [(r.record_date, r.department) for r in records] == [
        (date(2024, 1, 31), "A"),
        (date(2024, 2, 1), "A"),
        (date(2024, 2, 1), "B"),
    ]


@pytest.mark.asyncio
async def test_latest_temperatures(db):
    assert await db.get_latest_temperatures() == []

    await db.save_temperatures([_sample("A", 1.0)], date(2023, 12, 31))
    await db.save_temperatures([_sample("A", 5.0), _sample("B", 6.0)], date(2024, 1, 2))

    latest = await db.get_latest_temperatures()

    assert [(r.department, r.temperature) for r in latest] == [("A", 5.0), ("B", 6.0)]


@pytest.mark.asyncio
async def test_subscribe_and_unsubscribe(db):
    await db.add_subscriber(100, "alice")
    await db.add_subscriber(200, None)

    assert {s.chat_id for s in await db.get_subscribers()} == {100, 200}

    await db.remove_subscriber(100)

    assert [s.chat_id for s in await db.get_subscribers()] == [200]


@pytest.mark.asyncio
async def test_double_subscribe_fails(db):
    await db.add_subscriber(100, "alice")

    with pytest.raises(AlreadySubscribedError):
        await db.add_subscriber(100, "alice")


@pytest.mark.asyncio
async def test_unsubscribe_unknown_chat_fails(db):
    with pytest.raises(NotSubscribedError):
        await db.remove_subscriber(404)
