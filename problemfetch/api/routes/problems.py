"""Problem lookup route."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from problemfetch.api.deps import get_resolver
from problemfetch.core.errors import (
    FetchCancelledError,
    FetchError,
    ParseError,
    ProblemNotFoundError,
)
from problemfetch.schemas import ErrorResponse, ExtractedDocument
from problemfetch.services.resolver import ProblemResolver, describe_failure

logger = logging.getLogger(__name__)

router = APIRouter(tags=["problems"])


def _error(status_code: int, kind: str, message: str) -> JSONResponse:
    """Build an ``ErrorResponse`` JSON body with *status_code*."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=kind, message=message).model_dump(),
    )


@router.get(
    "/problems/{problem_id}",
    response_model=ExtractedDocument,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def get_problem(
    problem_id: str,
    resolver: ProblemResolver = Depends(get_resolver),
) -> ExtractedDocument | JSONResponse:
    """Return the extracted problem document for *problem_id*.

    Served from the problem cache when possible; otherwise the
    page is fetched (with retries) and extracted.
    """
    try:
        return await resolver.resolve(problem_id)
    except ValueError as exc:
        return _error(400, "invalid_identifier", str(exc))
    except ProblemNotFoundError as exc:
        return _error(404, "not_found", describe_failure(exc, problem_id))
    except FetchError as exc:
        return _error(502, "fetch_failed", describe_failure(exc, problem_id))
    except ParseError as exc:
        logger.warning("Problem %s could not be extracted: %s", problem_id, exc)
        return _error(502, "parse_failed", describe_failure(exc, problem_id))
    except FetchCancelledError as exc:
        return _error(503, "cancelled", describe_failure(exc, problem_id))
    except Exception as exc:
        logger.exception("Unexpected error resolving problem %s", problem_id)
        return _error(500, "internal_error", describe_failure(exc, problem_id))
