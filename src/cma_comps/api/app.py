import logging

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from cma_comps.api.schemas import ComparableSearchRequest
from cma_comps.config import Settings, get_settings, require_configured
from cma_comps.errors import ConfigurationError, SearchValidationError, UpstreamError
from cma_comps.providers.repliers import RepliersClient
from cma_comps.search import ComparableSearch


logger = logging.getLogger("cma.api")


def get_listings_client(settings: Settings = Depends(get_settings)):
    """Request-scoped provider client; fails fast when credentials are missing."""

    try:
        require_configured(settings)
    except ConfigurationError as exc:
        logger.error("listings client unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc))
    client = RepliersClient.from_settings(settings)
    try:
        yield client
    finally:
        client.close()


def health():
    return {"status": "ok"}


app = FastAPI()


@app.get("/health")
def health_route():
    return health()


@app.post("/api/cma/search-properties")
def search_properties(
    payload: dict = Body(...),
    settings: Settings = Depends(get_settings),
    client=Depends(get_listings_client),
):
    try:
        request = ComparableSearchRequest.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=[e.get("msg") for e in exc.errors()])
    if not request.search_text and not request.has_criteria():
        raise HTTPException(
            status_code=400,
            detail="search or at least one criteria field is required",
        )

    engine = ComparableSearch(client, settings=settings)
    try:
        response = engine.search(request)
    except SearchValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except UpstreamError as exc:
        logger.warning("criteria search upstream failure: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return JSONResponse(response.to_payload())
