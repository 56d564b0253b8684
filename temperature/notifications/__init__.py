"""Notification module for the temperature scrapper."""

from .notifier import Notifier
from .templates import MessageTemplates

__all__ = ["Notifier", "MessageTemplates"]
