"""Service wiring for the API.

The services are built once per process on first use. Tests replace
``get_services`` through ``app.dependency_overrides``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog
from google.cloud.firestore_v1.async_client import AsyncClient

from api.agents import CaseLawResponder, DocumentProcessingResponder, ReasoningResponder, ResearchResponder
from api.conversation import ConversationHandler
from api.delivery import DeliveryAdapter
from api.orchestrators.coordinator import IntegrationCoordinator
from api.orchestrators.tasks import TaskRunner
from api.whatsapp import WhatsAppClient
from libs.caching.redis_client import close_redis_client
from libs.caching.store import CacheStore, build_cache_store
from libs.common.settings import Settings, get_settings
from libs.firebase.client import get_firestore_async_client

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    firestore: AsyncClient
    cache: CacheStore
    runner: TaskRunner
    transport: WhatsAppClient
    coordinator: IntegrationCoordinator
    conversation: ConversationHandler
    research: ResearchResponder
    case_law: CaseLawResponder


def build_services(settings: Settings, firestore: AsyncClient, cache: CacheStore) -> Services:
    """Wire responders, coordinator, delivery and conversation handling together."""
    research = ResearchResponder(cache)
    case_law = CaseLawResponder(cache, research)
    runner = TaskRunner(max_concurrent=settings.max_concurrent_tasks)
    transport = WhatsAppClient.from_settings(settings)
    coordinator = IntegrationCoordinator(
        client=firestore,
        reasoning=ReasoningResponder(cache),
        case_law=case_law,
        document_processor=DocumentProcessingResponder(cache),
        runner=runner,
        delivery=DeliveryAdapter(firestore, transport),
        timeout_seconds=settings.processing_timeout_seconds,
        max_query_length=settings.max_query_length,
    )
    conversation = ConversationHandler(
        client=firestore,
        coordinator=coordinator,
        transport=transport,
        general_query_delay=settings.general_query_delay_seconds,
        country_code=settings.default_country_code,
    )
    return Services(
        settings=settings,
        firestore=firestore,
        cache=cache,
        runner=runner,
        transport=transport,
        coordinator=coordinator,
        conversation=conversation,
        research=research,
        case_law=case_law,
    )


# Global services instance (singleton)
_services: Optional[Services] = None
_services_lock = asyncio.Lock()


async def get_services() -> Services:
    """Get or create the process-wide services."""
    global _services

    if _services is not None:
        return _services

    async with _services_lock:
        # Another request may have finished building while this one waited
        if _services is None:
            settings = get_settings()
            cache = await build_cache_store(settings)
            _services = build_services(settings, get_firestore_async_client(), cache)
            logger.info(
                "Services initialized",
                cache_backend=type(cache).__name__,
                whatsapp_simulated=_services.transport.simulate,
            )
    return _services


async def shutdown_services() -> None:
    global _services

    if _services is not None:
        await _services.runner.shutdown()
        await close_redis_client()
        _services = None
