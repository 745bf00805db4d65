"""HTTP client for the upstream OAuth and category-suggestion endpoints."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from taxotariff.config import Settings
from taxotariff.errors import ClassificationError, UpstreamAuthError
from taxotariff.models import Token, UpstreamSuggestionsPayload
from taxotariff.observability import log_event, redact_secret

logger = logging.getLogger(__name__)


class TaxonomyClient:
    """Synchronous wrapper over ``httpx.Client``.

    Every request carries the configured timeout; transport failures are
    surfaced as the terminal error of the calling operation.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.clock = clock
        self._http = httpx.Client(timeout=settings.http_timeout, transport=transport)

    @property
    def suggestions_url(self) -> str:
        base = self.settings.taxonomy_url.rstrip("/")
        return f"{base}/category_tree/{self.settings.category_tree_id}/get_category_suggestions"

    def request_token(self) -> Token:
        """Obtain a client-credentials token.

        Raises:
            UpstreamAuthError: on missing credentials, transport failure or a non-200 answer.
        """
        auth = self.settings.resolved_client_auth
        if not auth:
            raise UpstreamAuthError("No client credentials configured")

        log_event("credentials.request", token_url=self.settings.token_url, auth=redact_secret(auth))
        try:
            response = self._http.post(
                self.settings.token_url,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Authorization": f"Basic {auth}",
                },
                data={"grant_type": "client_credentials", "scope": self.settings.token_scope},
            )
        except httpx.HTTPError as exc:
            raise UpstreamAuthError(f"Error getting token: {exc}") from exc

        if response.status_code != 200:
            raise UpstreamAuthError("Error getting token", status_code=response.status_code)

        try:
            body = response.json()
            access_token = str(body["access_token"])
            expires_in = float(body["expires_in"])
        except (ValueError, KeyError, TypeError) as exc:
            raise UpstreamAuthError(f"Malformed token response: {exc}") from exc

        expires_at = self.clock() + expires_in - self.settings.token_margin
        return Token(access_token=access_token, expires_at=expires_at)

    def category_suggestions(self, query: str, access_token: str) -> Optional[UpstreamSuggestionsPayload]:
        """Return the ranked suggestions for ``query``, or ``None`` on HTTP 204.

        Raises:
            ClassificationError: on transport failure, any status other than
                200/204, or an unparseable payload.
        """
        try:
            response = self._http.get(
                self.suggestions_url,
                params={"q": query},
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {access_token}",
                },
            )
        except httpx.HTTPError as exc:
            raise ClassificationError(f"Failed to look up {query!r}: {exc}") from exc

        if response.status_code == 204:
            return None
        if response.status_code != 200:
            raise ClassificationError(
                f"Failed to look {response.status_code}", status_code=response.status_code
            )

        try:
            return UpstreamSuggestionsPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ClassificationError(f"Malformed classification payload: {exc}") from exc

    def close(self) -> None:
        self._http.close()
