"""
Database operations for the temperature scrapper.
Uses SQLite with async support via aiosqlite.
"""

import aiosqlite
import logging
from datetime import date
from pathlib import Path
from typing import Optional, List, Iterable

from .models import TemperatureRecord, Subscriber
from ..weather.models import TemperatureSample

logger = logging.getLogger(__name__)


class AlreadySubscribedError(Exception):
    """The chat is already subscribed."""


class NotSubscribedError(Exception):
    """The chat was not subscribed."""


class Database:
    """Async SQLite database manager."""

    def __init__(self, db_path: str):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def connect(self) -> None:
        """Connect to the database and create tables if needed."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._create_tables()
        logger.info(f"Connected to database: {self.db_path}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        async with self._connection.cursor() as cursor:
            await cursor.execute("""
                CREATE TABLE IF NOT EXISTS temperatures (
                    department TEXT NOT NULL,
                    day INTEGER NOT NULL,
                    month INTEGER NOT NULL,
                    year INTEGER NOT NULL,
                    temperature REAL NOT NULL,
                    PRIMARY KEY (department, day, month, year)
                )
            """)

            await cursor.execute("""
                CREATE TABLE IF NOT EXISTS subscribers (
                    chat_id INTEGER PRIMARY KEY,
                    username TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            await self._connection.commit()

    # =========================================================================
    # Temperature operations
    # =========================================================================

    async def save_temperatures(
        self,
        samples: Iterable[TemperatureSample],
        day: date
    ) -> List[TemperatureRecord]:
        """
        Store the samples of one batch under the given day.

        Re-running a day overwrites the previous values.

        Args:
            samples: Samples produced by a successful batch
            day: Day the samples belong to

        Returns:
            Stored records
        """
        records = [TemperatureRecord.from_sample(sample, day) for sample in samples]
        async with self._connection.cursor() as cursor:
            await cursor.executemany("""
                INSERT OR REPLACE INTO temperatures (department, day, month, year, temperature)
                VALUES (?, ?, ?, ?, ?)
            """, [
                (r.department, r.day, r.month, r.year, r.temperature)
                for r in records
            ])
            await self._connection.commit()
        logger.info(f"Saved {len(records)} temperature records for {day.isoformat()}")
        return records

    async def get_all_temperatures(self) -> List[TemperatureRecord]:
        """Get every stored record ordered by date and department."""
        async with self._connection.cursor() as cursor:
            await cursor.execute(
                "SELECT * FROM temperatures ORDER BY year, month, day, department"
            )
            rows = await cursor.fetchall()
            return [self._row_to_record(row) for row in rows]

    async def get_temperatures_by_date(self, day: date) -> List[TemperatureRecord]:
        """Get the records of one day ordered by department."""
        async with self._connection.cursor() as cursor:
            await cursor.execute(
                """
                SELECT * FROM temperatures
                WHERE year = ? AND month = ? AND day = ?
                ORDER BY department
                """,
                (day.year, day.month, day.day)
            )
            rows = await cursor.fetchall()
            return [self._row_to_record(row) for row in rows]

    async def get_latest_temperatures(self) -> List[TemperatureRecord]:
        """Get the records of the most recent stored day."""
        async with self._connection.cursor() as cursor:
            await cursor.execute(
                "SELECT year, month, day FROM temperatures "
                "ORDER BY year DESC, month DESC, day DESC LIMIT 1"
            )
            row = await cursor.fetchone()
        if row is None:
            return []
        return await self.get_temperatures_by_date(date(row["year"], row["month"], row["day"]))

    def _row_to_record(self, row: aiosqlite.Row) -> TemperatureRecord:
        """Convert a database row to a TemperatureRecord object."""
        return TemperatureRecord(
            department=row["department"],
            day=row["day"],
            month=row["month"],
            year=row["year"],
            temperature=row["temperature"]
        )

    # =========================================================================
    # Subscriber operations
    # =========================================================================

    async def add_subscriber(self, chat_id: int, username: Optional[str] = None) -> Subscriber:
        """
        Subscribe a chat to update notifications.

        Raises:
            AlreadySubscribedError: If the chat is already subscribed
        """
        async with self._connection.cursor() as cursor:
            try:
                await cursor.execute(
                    "INSERT INTO subscribers (chat_id, username) VALUES (?, ?)",
                    (chat_id, username)
                )
            except aiosqlite.IntegrityError as e:
                raise AlreadySubscribedError(f"Chat {chat_id} is already subscribed") from e
            await self._connection.commit()
        logger.info(f"Subscribed chat {chat_id} ({username})")
        return Subscriber(chat_id=chat_id, username=username)

    async def remove_subscriber(self, chat_id: int) -> None:
        """
        Unsubscribe a chat.

        Raises:
            NotSubscribedError: If the chat was not subscribed
        """
        async with self._connection.cursor() as cursor:
            await cursor.execute("DELETE FROM subscribers WHERE chat_id = ?", (chat_id,))
            deleted = cursor.rowcount
            await self._connection.commit()
        if not deleted:
            raise NotSubscribedError(f"Chat {chat_id} was not subscribed")
        logger.info(f"Unsubscribed chat {chat_id}")

    async def get_subscribers(self) -> List[Subscriber]:
        """Get all subscribed chats."""
        async with self._connection.cursor() as cursor:
            await cursor.execute("SELECT * FROM subscribers ORDER BY created_at, chat_id")
            rows = await cursor.fetchall()
            return [
                Subscriber(
                    chat_id=row["chat_id"],
                    username=row["username"],
                    created_at=row["created_at"]
                )
                for row in rows
            ]
