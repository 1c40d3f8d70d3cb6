"""Token enrichment for cycle highlights."""

from .token_data import TokenDataProvider, UNAVAILABLE_MESSAGE

__all__ = ["TokenDataProvider", "UNAVAILABLE_MESSAGE"]
