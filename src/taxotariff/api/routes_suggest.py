from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Response
from fastapi.responses import JSONResponse

from taxotariff.api.dependencies import get_services
from taxotariff.bootstrap import ResolverServices
from taxotariff.models import ErrorResponseModel, SuggestResponseModel

router = APIRouter(prefix="/suggest", tags=["suggest"])


@router.get(
    "/{query}",
    response_model=SuggestResponseModel,
    responses={304: {"description": "Not modified"}, 500: {"model": ErrorResponseModel}},
)
def suggest_categories_endpoint(
    query: str,
    if_none_match: Optional[str] = Header(None),
    services: ResolverServices = Depends(get_services),
) -> Response:
    result = services.suggestions.resolve_conditional(query, if_none_match)
    if result.not_modified:
        return Response(status_code=304, headers={"ETag": result.etag})

    body = SuggestResponseModel(suggestions=result.suggestions)
    return JSONResponse(
        content=body.model_dump(exclude_none=True),
        headers={
            "Cache-Control": f"public, max-age={services.settings.suggest_max_age}",
            "ETag": result.etag,
        },
    )
