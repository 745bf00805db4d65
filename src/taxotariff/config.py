"""Environment-driven settings for the resolver services."""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

DEFAULT_TOKEN_URL = "https://api.ebay.com/identity/v1/oauth2/token"
DEFAULT_TOKEN_SCOPE = "https://api.ebay.com/oauth/api_scope"
DEFAULT_TAXONOMY_URL = "https://api.ebay.com/commerce/taxonomy/v1"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Configuration for :func:`taxotariff.bootstrap.build_services`."""

    client_auth: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = field(default=None, repr=False)
    token_url: str = DEFAULT_TOKEN_URL
    token_scope: str = DEFAULT_TOKEN_SCOPE
    taxonomy_url: str = DEFAULT_TAXONOMY_URL
    category_tree_id: str = "3"
    http_timeout: float = 10.0
    token_margin: int = 60
    tariff_attempts: int = 3
    enrich_workers: int = 8
    suggest_max_age: int = 60
    results_url: str = "sqlite:///data/results.db"
    tariff_url: str = "sqlite:///data/tariff.db"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            client_auth=env.get("TAXO_CLIENT_AUTH") or None,
            client_id=env.get("TAXO_CLIENT_ID") or None,
            client_secret=env.get("TAXO_CLIENT_SECRET") or None,
            token_url=env.get("TAXO_TOKEN_URL", DEFAULT_TOKEN_URL),
            token_scope=env.get("TAXO_TOKEN_SCOPE", DEFAULT_TOKEN_SCOPE),
            taxonomy_url=env.get("TAXO_TAXONOMY_URL", DEFAULT_TAXONOMY_URL),
            category_tree_id=env.get("TAXO_CATEGORY_TREE_ID", "3"),
            http_timeout=_float_env(env, "TAXO_HTTP_TIMEOUT", 10.0),
            token_margin=_int_env(env, "TAXO_TOKEN_MARGIN", 60),
            tariff_attempts=max(1, _int_env(env, "TAXO_TARIFF_ATTEMPTS", 3)),
            enrich_workers=max(1, _int_env(env, "TAXO_ENRICH_WORKERS", 8)),
            suggest_max_age=max(0, _int_env(env, "TAXO_SUGGEST_MAX_AGE", 60)),
            results_url=env.get("TAXO_RESULTS_URL", "sqlite:///data/results.db"),
            tariff_url=env.get("TAXO_TARIFF_URL", "sqlite:///data/tariff.db"),
            log_level=env.get("TAXO_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def resolved_client_auth(self) -> str:
        """Basic-auth credential for the token endpoint.

        ``TAXO_CLIENT_AUTH`` is used verbatim when present; otherwise the
        client id and secret are joined and base64 encoded.
        """
        if self.client_auth:
            return self.client_auth
        if self.client_id and self.client_secret:
            raw = f"{self.client_id}:{self.client_secret}".encode("utf-8")
            return base64.b64encode(raw).decode("ascii")
        return ""
