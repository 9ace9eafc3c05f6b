"""Common interface for the knowledge responders.

A responder turns a classified query or document into a result. Results are
memoized in a cache namespace owned by the responder.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from api.errors import ResponderFailure
from libs.caching.store import CacheStore
from libs.models.firestore import CaseLawEntry, DocumentRecord, QueryRecord, Reference

logger = structlog.get_logger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class QueryAnswer(BaseModel):
    """Answer produced for a query."""

    answer: str = Field(..., description="Answer text")
    references: list[Reference] = Field(default_factory=list, description="Statutory references")
    case_laws: list[CaseLawEntry] = Field(default_factory=list, description="Case citations")


class DocumentAnalysis(BaseModel):
    """Analysis produced for an uploaded document."""

    analysis: str = Field(..., description="Analysis text")
    recommendations: list[str] = Field(default_factory=list, description="Ordered recommendations")


class CachedResponder:
    """Mixin giving a responder read-through caching on its namespace."""

    cache_namespace = "responder"

    def __init__(self, cache: CacheStore):
        self.cache = cache.namespace(self.cache_namespace)

    async def cached(
        self,
        key: str,
        model: type[ResultT],
        compute: Callable[[], Awaitable[ResultT]],
    ) -> ResultT:
        payload = await self.cache.get(key)
        if payload is not None:
            try:
                return model.model_validate(payload)
            except ValidationError as e:
                logger.warning("Discarding malformed cache entry", namespace=self.cache_namespace, key=key, error=str(e))

        try:
            result = await compute()
        except ResponderFailure:
            raise
        except Exception as e:
            # The message is kept verbatim; it becomes the entity's error
            raise ResponderFailure(str(e) or type(e).__name__) from e
        await self.cache.put(key, result.model_dump(mode="json"))
        return result


class QueryResponder(ABC):
    @abstractmethod
    async def respond(self, query: QueryRecord) -> QueryAnswer:
        """Produce an answer for a query. Errors propagate to the caller."""


class DocumentResponder(ABC):
    @abstractmethod
    async def analyze(self, document: DocumentRecord) -> DocumentAnalysis:
        """Produce an analysis for a document. Errors propagate to the caller."""
