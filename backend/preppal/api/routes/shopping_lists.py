"""Shopping list endpoints: thin wrapper around the shopping pipeline.

The caller identity arrives in ``X-User-ID``, set by the upstream auth
gateway. Prompt validation is the first step of the pipeline, so nothing runs
for a rejected prompt.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from preppal.api.dependencies import Services, get_services
from preppal.models.contracts import (
    ErrorResponse,
    GenerateListRequest,
    GenerateListResponse,
    SavedListSummary,
    SaveListRequest,
)
from preppal.pipeline.catalog import CatalogUnavailableError
from preppal.pipeline.intent import IntentResolutionError, InvalidPromptError
from preppal.pipeline.shopping import generate_shopping_list

logger = structlog.get_logger()

router = APIRouter(tags=["shopping-lists"])

CallerId = Annotated[str | None, Header(alias="X-User-ID")]


def _error(status: int, code: str, message: str, *, retryable: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=code, message=message, retryable=retryable).model_dump(),
    )


_UNAUTHENTICATED = (401, "unauthenticated", "Missing caller identity")


@router.post(
    "/shopping-lists/generate",
    response_model=GenerateListResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def generate_list(
    body: GenerateListRequest,
    services: Annotated[Services, Depends(get_services)],
    x_user_id: CallerId = None,
):
    if not x_user_id:
        return _error(*_UNAUTHENTICATED)
    try:
        return await generate_shopping_list(body, services.resolver, services.catalog)
    except InvalidPromptError as exc:
        return _error(400, "invalid_prompt", str(exc))
    except CatalogUnavailableError:
        logger.exception("shopping_list_catalog_unavailable", user_id=x_user_id)
        return _error(503, "catalog_unavailable", "The product catalog is unavailable", retryable=True)
    except IntentResolutionError as exc:
        logger.error("shopping_list_intent_failed", user_id=x_user_id, error=str(exc)[:200])
        return _error(
            502,
            "intent_resolution_failed",
            "Could not build a shopping list for this prompt",
            retryable=exc.retryable,
        )


@router.post(
    "/shopping-lists",
    status_code=201,
    response_model=SavedListSummary,
    responses={401: {"model": ErrorResponse}},
)
async def save_list(
    body: SaveListRequest,
    services: Annotated[Services, Depends(get_services)],
    x_user_id: CallerId = None,
):
    if not x_user_id:
        return _error(*_UNAUTHENTICATED)
    return await services.saved_lists.save(x_user_id, body)


@router.get(
    "/shopping-lists",
    response_model=list[SavedListSummary],
    responses={401: {"model": ErrorResponse}},
)
async def list_saved(
    services: Annotated[Services, Depends(get_services)],
    x_user_id: CallerId = None,
):
    if not x_user_id:
        return _error(*_UNAUTHENTICATED)
    return await services.saved_lists.list_for_user(x_user_id)
