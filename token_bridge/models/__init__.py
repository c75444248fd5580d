"""Domain models."""

from .tokens import REQUIRED_FIELDS, TokenBundle, TokenSerializationError

__all__ = ["REQUIRED_FIELDS", "TokenBundle", "TokenSerializationError"]
