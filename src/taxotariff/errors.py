"""Error taxonomy shared by the resolvers, the stores and the API layer.

An empty classification result is not an error: resolvers return an empty
list for it. Everything below is terminal for the request that raised it.
"""

from __future__ import annotations

from typing import Optional


class ResolverError(Exception):
    """Base class for failures surfaced to API callers as HTTP 500."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class UpstreamAuthError(ResolverError):
    """The OAuth token endpoint did not hand out a usable token."""


class ClassificationError(ResolverError):
    """The classification endpoint answered with something other than 200 or 204."""


class StoreError(ResolverError):
    """A key-value backend failed to read, write or delete a key."""
