"""
Pydantic models for the Telegram webhook.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TelegramMessage(BaseModel):
    """Subset of Telegram message fields used for account linking."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: int
    date: int
    text: Optional[str] = None
    chat: Dict[str, Any]
    from_: Optional[Dict[str, Any]] = Field(None, alias="from")

    @property
    def sender_id(self) -> Optional[str]:
        """Telegram user id of the sender, falling back to the chat id."""
        sender = (self.from_ or {}).get("id") or self.chat.get("id")
        return str(sender) if sender is not None else None


class TelegramUpdate(BaseModel):
    """Minimal Telegram update payload we care about."""

    update_id: int
    message: Optional[TelegramMessage] = None


__all__ = ["TelegramMessage", "TelegramUpdate"]
