"""Exceptions raised by the suggestion engine."""

from __future__ import annotations


class RecipientNotFound(KeyError):
    """The recipient id does not resolve to a stored recipient."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Recipient not found."


class ProviderUnavailable(RuntimeError):
    """The external product search failed, timed out, or is not configured."""
