from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.auth import User, get_current_user
from api.dependencies import Services, get_services
from api.errors import InvalidInputError, NotFoundError
from api.models import QueryStatusResponse, QuerySubmitRequest, QuerySubmitResponse
from libs.firestore.system_settings import get_system_settings
from libs.models.firestore import Source, SystemSettings

logger = structlog.get_logger(__name__)
router = APIRouter()


async def ensure_not_in_maintenance(services: Services) -> SystemSettings:
    """Raise 503 while the operator has switched on maintenance mode.

    Returns the operator settings that were read.
    """
    system_settings = await get_system_settings(services.firestore)
    if system_settings.maintenance_mode:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The service is under maintenance. Please try again later.",
        )
    return system_settings


@router.post(
    "/query/submit",
    response_model=QuerySubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Legal Query"],
)
async def submit_query(
    request: Request,
    query_request: QuerySubmitRequest,
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> QuerySubmitResponse:
    """Submit a legal question for background processing.

    The answer is produced asynchronously; poll ``GET /api/query/{id}``
    with the returned ``queryId``.

    Raises:
        HTTPException: 400 for invalid input, 503 during maintenance, 500 for errors

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/query/submit \\
          -H "Authorization: Bearer $TOKEN" \\
          -H "Content-Type: application/json" \\
          -d '{"queryText": "What is the definition of robbery?"}'
        ```
    """
    request_id = getattr(request.state, "request_id", "unknown")
    await ensure_not_in_maintenance(services)

    try:
        receipt = await services.coordinator.submit_query(
            query_request.query_text,
            user_id=current_user.uid,
            source=Source.WEB,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error("Query submission failed", request_id=request_id, error=str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit query",
        )

    logger.info("Query submitted", request_id=request_id, query_id=receipt.entity_id, uid=current_user.uid)
    return QuerySubmitResponse(
        query_id=receipt.entity_id,
        status=receipt.status.value,
        estimated_time=receipt.estimated_time,
        message=receipt.message,
    )


@router.get("/query/{query_id}", response_model=QueryStatusResponse, tags=["Legal Query"])
async def get_query(
    query_id: str,
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> QueryStatusResponse:
    """Return the current state of a query.

    Only the owner of the query, or an admin, may read it.

    Raises:
        HTTPException: 404 if the query does not exist or belongs to someone else
    """
    try:
        query = await services.coordinator.get_query_status(query_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    if query.user_id != current_user.uid and not current_user.is_admin:
        logger.warning("Query read by non-owner", query_id=query_id, uid=current_user.uid)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Query not found: {query_id}")

    return QueryStatusResponse.from_record(query)
