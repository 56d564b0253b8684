"""
Daily Temperature Scrapper
==========================
Collects yesterday's average temperature for every configured location,
stores it in SQLite and announces the result to Telegram subscribers.
"""

__version__ = "1.0.0"
__author__ = "Temperature Scrapper"
