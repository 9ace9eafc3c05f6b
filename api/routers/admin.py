"""Operator endpoints. Every route requires the ``admin`` custom claim."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query

from api.auth import User, require_admin
from api.dependencies import Services, get_services
from api.models import (
    AdminQueriesResponse,
    AdminQueryView,
    AdminStats,
    AdminStatsResponse,
    AdminUsersResponse,
    AdminUserView,
    SystemSettingsResponse,
    SystemSettingsUpdate,
)
from libs.firestore.documents import list_documents_by_status
from libs.firestore.queries import list_queries_by_status, list_recent_queries
from libs.firestore.system_settings import get_system_settings, update_system_settings
from libs.firestore.users import list_users
from libs.models.firestore import EntityStatus

logger = structlog.get_logger(__name__)
router = APIRouter()


async def collect_stats(services: Services) -> AdminStats:
    """Count queries by status and derive the completion rate.

    Active users are the distinct owners of any stored query.
    """
    by_status = {
        entity_status: await list_queries_by_status(services.firestore, entity_status.value)
        for entity_status in EntityStatus
    }
    completed = len(by_status[EntityStatus.COMPLETED])
    failed = len(by_status[EntityStatus.FAILED])
    owners = {query.user_id for queries in by_status.values() for query in queries}
    documents = await list_documents_by_status(services.firestore, EntityStatus.COMPLETED.value)

    finished = completed + failed
    return AdminStats(
        total_queries=sum(len(queries) for queries in by_status.values()),
        active_users=len(owners),
        documents_processed=len(documents),
        success_rate=round(completed * 100 / finished, 1) if finished else 0.0,
    )


@router.get("/admin/stats", response_model=AdminStatsResponse, tags=["Admin"])
async def get_stats(
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> AdminStatsResponse:
    return AdminStatsResponse(stats=await collect_stats(services))


@router.get("/admin/users", response_model=AdminUsersResponse, tags=["Admin"])
async def get_users(
    limit: int = Query(100, ge=1, le=500),
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> AdminUsersResponse:
    users = await list_users(services.firestore, limit=limit)
    return AdminUsersResponse(users=[AdminUserView(**user.model_dump()) for user in users])


@router.get("/admin/queries/recent", response_model=AdminQueriesResponse, tags=["Admin"])
async def get_recent_queries(
    limit: int = Query(20, ge=1, le=100),
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> AdminQueriesResponse:
    queries = await list_recent_queries(services.firestore, limit=limit)
    return AdminQueriesResponse(
        queries=[AdminQueryView(**query.model_dump(include=set(AdminQueryView.model_fields))) for query in queries]
    )


@router.get("/admin/settings", response_model=SystemSettingsResponse, tags=["Admin"])
async def get_settings_endpoint(
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> SystemSettingsResponse:
    system_settings = await get_system_settings(services.firestore)
    return SystemSettingsResponse(settings=system_settings.model_dump(mode="json"))


@router.put("/admin/settings", response_model=SystemSettingsResponse, tags=["Admin"])
async def update_settings_endpoint(
    update: SystemSettingsUpdate,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> SystemSettingsResponse:
    """Change operator settings. Fields left out of the body keep their value.

    Changes apply from the next submission or background task. Length, size
    and timeout values can only tighten the limits the deployment sets.
    """
    changes = update.model_dump(exclude_none=True)
    system_settings = await update_system_settings(services.firestore, changes)
    logger.info("System settings updated", uid=admin.uid, fields=sorted(changes))
    return SystemSettingsResponse(settings=system_settings.model_dump(mode="json"))
