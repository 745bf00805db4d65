"""Bearer token caching for the classification API.

A single ``TOKEN`` entry is shared by every request served from the same
store. It is refreshed once ``expires_at`` (epoch seconds, safety margin
already subtracted) has passed, and dropped whenever the classifier rejects
a call so that the next request fetches a new one.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Optional

from pydantic import ValidationError

from taxotariff.errors import UpstreamAuthError
from taxotariff.models import Token
from taxotariff.observability import log_event
from taxotariff.storage import KeyValueStore
from taxotariff.taxonomy.client import TaxonomyClient

logger = logging.getLogger(__name__)

TOKEN_KEY = "TOKEN"


class CredentialCache:
    def __init__(
        self,
        store: KeyValueStore,
        client: TaxonomyClient,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.client = client
        self.clock = clock

    def _read(self) -> Optional[Token]:
        raw = self.store.get(TOKEN_KEY)
        if raw is None:
            return None
        try:
            return Token.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable cached token")
            return None

    def _fresh(self) -> Optional[Token]:
        token = self._read()
        if token is None or token.is_expired(self.clock()):
            return None
        return token

    def get_credentials(self) -> Token:
        """Return a live token, refreshing it at most once per lock holder.

        Raises:
            UpstreamAuthError: if the token endpoint fails.
        """
        token = self._fresh()
        if token is not None:
            return token

        with self.store.lock(TOKEN_KEY):
            # Another caller may have refreshed while we waited.
            token = self._fresh()
            if token is not None:
                return token
            return self.refresh()

    def refresh(self) -> Token:
        try:
            token = self.client.request_token()
        except UpstreamAuthError:
            self.invalidate()
            raise
        self.store.put(TOKEN_KEY, json.dumps(token.model_dump()))
        log_event("credentials.refresh", expires_at=token.expires_at)
        return token

    def invalidate(self) -> None:
        self.store.delete(TOKEN_KEY)
        log_event("credentials.invalidate")
