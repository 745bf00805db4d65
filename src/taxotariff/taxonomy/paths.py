"""Query normalization, ancestor-path construction and path overview."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from taxotariff.models import Category, Overview, UpstreamSuggestionModel


def normalize_query(query: str) -> str:
    """Trim and lowercase so cache keys ignore case and surrounding whitespace."""
    return query.strip().lower()


def category_path(candidate: UpstreamSuggestionModel) -> List[Category]:
    """Root-to-leaf path for one upstream candidate.

    Ancestors arrive ordered from the matched leaf's parent up to the root;
    they are reversed and the matched category is appended as the leaf.
    """
    path = [
        Category(id=ancestor.categoryId, name=ancestor.categoryName)
        for ancestor in reversed(candidate.categoryTreeNodeAncestors)
    ]
    path.append(Category(id=candidate.category.categoryId, name=candidate.category.categoryName))
    return path


def first_meta_value(path: Sequence[Category], field: str, *, allow_empty: bool = True) -> Optional[str]:
    """Search from leaf to root for the first category whose meta carries ``field``.

    The most specific category wins; ancestors only fill in what the
    descendants leave unset.
    """
    for category in reversed(path):
        if not category.meta or field not in category.meta:
            continue
        value = category.meta[field]
        if not allow_empty and not value:
            continue
        return value
    return None


def derive_overview(path: Sequence[Category]) -> Overview:
    hs_code = first_meta_value(path, "hsCode", allow_empty=False)
    prohibited = first_meta_value(path, "prohibited")
    protectable = first_meta_value(path, "protectable")
    return Overview(
        hsCode=hs_code,
        prohibited=(prohibited or "false") == "true",
        protectable=(protectable or "true") == "true",
    )


def iter_categories(paths: Iterable[Sequence[Category]]) -> Iterable[Category]:
    for path in paths:
        yield from path
