"""Bridge GitHub OAuth grants to Telegram users."""

__version__ = "0.1.0"
