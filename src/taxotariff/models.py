from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

Meta = Dict[str, str]


class Token(BaseModel):
    """Cached OAuth bearer token; ``expires_at`` is epoch seconds with the safety margin applied."""

    access_token: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class Category(BaseModel):
    """One taxonomy node in a root-to-leaf path."""

    id: str
    name: str
    meta: Optional[Meta] = None

    model_config = ConfigDict(extra="ignore")


class Suggestion(BaseModel):
    """Full ancestor path for one upstream-ranked candidate."""

    suggestion: List[Category]


class Overview(BaseModel):
    """Effective classification for a path, read from leaf to root."""

    hsCode: Optional[str] = None
    prohibited: bool = False
    protectable: bool = True


class CategoryResponseModel(BaseModel):
    categories: List[Category]
    overview: Overview


class SuggestResponseModel(BaseModel):
    suggestions: List[Suggestion]


class ErrorResponseModel(BaseModel):
    error: str


# -----------------------------------------------------------------------------
# Upstream classifier payload
# -----------------------------------------------------------------------------
class UpstreamCategoryModel(BaseModel):
    categoryId: str
    categoryName: str

    model_config = ConfigDict(extra="ignore")


class UpstreamAncestorModel(UpstreamCategoryModel):
    categoryTreeNodeLevel: Optional[int] = None
    categorySubtreeNodeHref: Optional[str] = None


class UpstreamSuggestionModel(BaseModel):
    category: UpstreamCategoryModel
    categoryTreeNodeLevel: Optional[int] = None
    categoryTreeNodeAncestors: List[UpstreamAncestorModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class UpstreamSuggestionsPayload(BaseModel):
    categorySuggestions: List[UpstreamSuggestionModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
