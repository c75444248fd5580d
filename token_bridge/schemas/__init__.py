"""Public schema exports."""

from .telegram import TelegramMessage, TelegramUpdate

__all__ = ["TelegramMessage", "TelegramUpdate"]
