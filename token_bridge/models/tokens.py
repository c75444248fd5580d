"""
Domain model for a completed GitHub OAuth grant.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError


REQUIRED_FIELDS = (
    "access_token",
    "expires_in",
    "refresh_token",
    "refresh_token_expires_in",
    "scope",
    "token_type",
)


class TokenSerializationError(Exception):
    """Raised when a token bundle cannot be converted to or from its record."""


class TokenBundle(BaseModel):
    """Access and refresh credentials returned by the token endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., strict=True)
    refresh_token: str = Field(..., min_length=1)
    refresh_token_expires_in: int = Field(..., strict=True)
    scope: str = Field(..., min_length=1)
    token_type: str = Field(..., min_length=1)

    def to_record(self) -> str:
        """Serialize the bundle to the JSON text stored under a user's key."""
        try:
            return self.model_dump_json()
        except ValueError as exc:  # pragma: no cover - all fields are plain scalars
            raise TokenSerializationError("Failed to serialize token bundle.") from exc

    @classmethod
    def from_record(cls, record: str | bytes) -> "TokenBundle":
        """Parse a record previously produced by :meth:`to_record`."""
        try:
            return cls.model_validate_json(record)
        except ValidationError as exc:
            raise TokenSerializationError("Stored record is not a token bundle.") from exc


__all__ = ["REQUIRED_FIELDS", "TokenBundle", "TokenSerializationError"]
