from __future__ import annotations

from fastapi import HTTPException, Request

from taxotariff.bootstrap import ResolverServices


def get_services(request: Request) -> ResolverServices:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail={"message": "Resolver services unavailable"})
    return services
