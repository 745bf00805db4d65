from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Body, Depends, Response

from taxotariff.api.dependencies import get_services
from taxotariff.bootstrap import ResolverServices
from taxotariff.models import CategoryResponseModel, ErrorResponseModel
from taxotariff.taxonomy import derive_overview

router = APIRouter(prefix="/category", tags=["category"])


@router.get(
    "/{query}",
    response_model=CategoryResponseModel,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorResponseModel}},
)
def resolve_category_endpoint(
    query: str,
    services: ResolverServices = Depends(get_services),
) -> CategoryResponseModel:
    categories = services.categories.resolve_with_meta(query)
    return CategoryResponseModel(categories=categories, overview=derive_overview(categories))


@router.post("/{category_id}")
def merge_category_meta_endpoint(
    category_id: str,
    payload: Dict[str, str] = Body(...),
    services: ResolverServices = Depends(get_services),
) -> Response:
    services.metadata.merge(category_id, payload)
    return Response()


@router.delete("/{category_id}")
def delete_category_meta_endpoint(
    category_id: str,
    services: ResolverServices = Depends(get_services),
) -> Response:
    services.metadata.delete(category_id)
    return Response()
