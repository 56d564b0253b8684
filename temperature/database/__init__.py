"""Database module for the temperature scrapper."""

from .db import Database, AlreadySubscribedError, NotSubscribedError
from .models import TemperatureRecord, Subscriber

__all__ = [
    "Database",
    "AlreadySubscribedError",
    "NotSubscribedError",
    "TemperatureRecord",
    "Subscriber",
]
