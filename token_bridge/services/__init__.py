"""Service layer exports."""

from .handles import EphemeralHandleStore, HandleNotFoundError, generate_handle
from .linking import TokenLinkService
from .lookup import GatedLookupService, LookupRejectedError
from .token_cipher import TokenCipherService

__all__ = [
    "EphemeralHandleStore",
    "GatedLookupService",
    "HandleNotFoundError",
    "LookupRejectedError",
    "TokenCipherService",
    "TokenLinkService",
    "generate_handle",
]
