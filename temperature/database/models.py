"""
Database models for the temperature scrapper.
These dataclasses represent the structure of data stored in SQLite.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..weather.models import TemperatureSample


@dataclass
class TemperatureRecord:
    """
    Average temperature of one department for one day.

    Attributes:
        department: Location description the value was computed for
            Example: "Филиал Север"
        day: Day of month
        month: Month number (1-12)
        year: Four-digit year
        temperature: Average temperature in Celsius
            Example: -3.4
    """
    department: str
    day: int
    month: int
    year: int
    temperature: float

    @property
    def record_date(self) -> date:
        return date(self.year, self.month, self.day)

    @classmethod
    def from_sample(cls, sample: TemperatureSample, day: date) -> "TemperatureRecord":
        """Stamp a computed sample with the day it belongs to."""
        return cls(
            department=sample.location.description,
            day=day.day,
            month=day.month,
            year=day.year,
            temperature=sample.value,
        )


@dataclass
class Subscriber:
    """A Telegram chat receiving update notifications."""
    chat_id: int
    username: Optional[str] = None
    created_at: Optional[datetime] = None
