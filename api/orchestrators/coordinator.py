"""Integration coordinator for queries and documents.

The coordinator owns the entity lifecycle::

    received -> processing -> completed | failed

Submissions are validated and persisted synchronously, then handed to the
task runner. The background task is the only writer of an entity's status
after creation. Completed and failed are terminal.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

import structlog
from google.cloud.firestore_v1.async_client import AsyncClient

from api.agents.base import DocumentResponder, QueryAnswer, QueryResponder
from api.agents.case_law import CaseLawResponder, dedupe_by_citation
from api.classifier import classify_document, classify_query
from api.errors import InvalidInputError, InvalidTransitionError, NotFoundError, ProcessingTimeout
from api.orchestrators.tasks import TaskRunner
from libs.firestore import documents as document_store
from libs.firestore import queries as query_store
from libs.firestore.system_settings import get_system_settings
from libs.models.firestore import (
    CaseLawEntry,
    DocumentRecord,
    DocumentType,
    EntityStatus,
    FileMetadata,
    QueryRecord,
    QueryType,
    Reference,
    Source,
)

logger = structlog.get_logger(__name__)

EntityT = TypeVar("EntityT", QueryRecord, DocumentRecord)

ALLOWED_TRANSITIONS = {
    EntityStatus.RECEIVED: {EntityStatus.PROCESSING},
    EntityStatus.PROCESSING: {EntityStatus.COMPLETED, EntityStatus.FAILED},
    EntityStatus.COMPLETED: set(),
    EntityStatus.FAILED: set(),
}

QUERY_RECEIVED_MESSAGE = "Your query has been received and is being processed."
DOCUMENT_RECEIVED_MESSAGE = "Your document has been received and is being processed."

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


@dataclass
class Receipt:
    """Returned immediately after a submission is accepted."""

    entity_id: str
    status: EntityStatus
    estimated_time: int
    message: str


@dataclass
class ProcessingLimits:
    """Limits in force for one submission or task.

    Each value is the stricter of the deployment setting and the operator
    setting stored in Firestore.
    """

    max_query_length: int
    query_timeout: float
    document_timeout: float
    notifications_enabled: bool


@dataclass
class DocumentSubmission:
    title: str
    file: FileMetadata
    description: str | None = None
    document_type: DocumentType | None = None


def transition(entity: EntityT, target: EntityStatus, **fields: Any) -> EntityT:
    """Return a copy of ``entity`` in the ``target`` status.

    The copy is fully re-validated, so result fields on a non-completed
    entity or an error on a non-failed entity are rejected.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow the move.
    """
    current = EntityStatus(entity.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current.value, target.value)

    data = entity.model_dump()
    data.update(fields)
    data["status"] = target
    data["updated_at"] = datetime.utcnow()
    return type(entity).model_validate(data)


def merge_case_laws(existing: list[CaseLawEntry], extra: list[CaseLawEntry]) -> list[CaseLawEntry]:
    """Append ``extra`` citations not already present, keeping order."""
    return dedupe_by_citation([*existing, *extra])


def estimate_processing_time(
    text_length: int = 0,
    query_type: QueryType | str | None = None,
    file_type: str | None = None,
) -> int:
    """Rough seconds-to-completion shown to the user on submission."""
    if file_type is not None:
        file_type = file_type.lower()
        if "pdf" in file_type:
            return 60
        if file_type.startswith("image/"):
            return 90
        if "word" in file_type or "msword" in file_type:
            return 45
        if file_type.startswith("text/"):
            return 30
        return 60

    base = {
        QueryType.LEGAL_DEFINITION.value: 10,
        QueryType.CASE_LAW.value: 20,
        QueryType.PROCEDURAL_GUIDANCE.value: 15,
    }.get(QueryType(query_type).value if query_type else "", 15)
    return base + text_length // 200


def _new_id() -> str:
    return str(uuid.uuid4())


class IntegrationCoordinator:
    """Creates entities, runs their processing tasks and answers status polls.

    Args:
        client: Firestore client holding the ``queries`` and ``documents`` collections.
        reasoning: Responder producing query answers.
        case_law: Responder enriching results with related decisions.
        document_processor: Responder producing document analyses.
        runner: Keyed task runner for background processing.
        delivery: Optional adapter sending WhatsApp-sourced results back.
        timeout_seconds: Upper bound on the time limit of a processing task.
        max_query_length: Upper bound on the accepted query length.

    Operator settings stored in Firestore can only tighten these limits. They
    also split the time limit between queries and documents and can switch
    off WhatsApp delivery.
    """

    def __init__(
        self,
        client: AsyncClient,
        reasoning: QueryResponder,
        case_law: CaseLawResponder,
        document_processor: DocumentResponder,
        runner: TaskRunner,
        delivery=None,
        timeout_seconds: float = 120.0,
        max_query_length: int = 2000,
    ):
        self.client = client
        self.reasoning = reasoning
        self.case_law = case_law
        self.document_processor = document_processor
        self.runner = runner
        self.delivery = delivery
        self.timeout_seconds = timeout_seconds
        self.max_query_length = max_query_length

    async def current_limits(self) -> ProcessingLimits:
        system = await get_system_settings(self.client)
        return ProcessingLimits(
            max_query_length=min(self.max_query_length, system.max_query_length),
            query_timeout=min(self.timeout_seconds, system.query_processing_timeout),
            document_timeout=min(self.timeout_seconds, system.document_processing_timeout),
            notifications_enabled=system.notifications_enabled,
        )

    # -- Submission -------------------------------------------------------

    async def submit_query(
        self,
        query_text: str,
        user_id: str,
        source: Source = Source.WEB,
        delay_seconds: float = 0.0,
    ) -> Receipt:
        """Accept a question and start processing it in the background.

        Args:
            query_text: The question, within the current query length limit.
            user_id: UID of the submitting user.
            source: Channel the question arrived on.
            delay_seconds: Wait before processing starts.

        Returns:
            Receipt with status ``received``.

        Raises:
            InvalidInputError: If the text is empty or too long. Nothing is stored.
        """
        text = (query_text or "").strip()
        if not text:
            raise InvalidInputError("Query text is required")
        max_length = (await self.current_limits()).max_query_length
        if len(text) > max_length:
            raise InvalidInputError(f"Query text must be at most {max_length} characters")

        classification = classify_query(text)
        query = QueryRecord(
            query_id=_new_id(),
            user_id=user_id,
            query_text=text,
            query_type=classification.category,
            intent=classification.intent,
            keywords=classification.keywords,
            source=source,
        )
        await query_store.save_query(self.client, query)

        logger.info(
            "Query received",
            query_id=query.query_id,
            query_type=query.query_type,
            source=query.source,
            delay_seconds=delay_seconds,
        )
        self.runner.spawn(query.query_id, self._process_query(query.query_id, delay_seconds))

        return Receipt(
            entity_id=query.query_id,
            status=EntityStatus.RECEIVED,
            estimated_time=estimate_processing_time(len(text), query.query_type),
            message=QUERY_RECEIVED_MESSAGE,
        )

    async def submit_document(
        self,
        submission: DocumentSubmission,
        user_id: str,
        source: Source = Source.WEB,
    ) -> Receipt:
        """Accept a document and start analyzing it in the background.

        Raises:
            InvalidInputError: If the title or description is missing or too long.
        """
        title = (submission.title or "").strip()
        if not title:
            raise InvalidInputError("Document title is required")
        if len(title) > MAX_TITLE_LENGTH:
            raise InvalidInputError(f"Document title must be at most {MAX_TITLE_LENGTH} characters")
        if submission.description and len(submission.description) > MAX_DESCRIPTION_LENGTH:
            raise InvalidInputError(f"Document description must be at most {MAX_DESCRIPTION_LENGTH} characters")

        document_type = submission.document_type or classify_document(title, submission.description).category
        document = DocumentRecord(
            document_id=_new_id(),
            user_id=user_id,
            title=title,
            description=submission.description,
            document_type=document_type,
            file=submission.file,
            source=source,
        )
        await document_store.save_document(self.client, document)

        logger.info(
            "Document received",
            document_id=document.document_id,
            document_type=document.document_type,
            source=document.source,
            file_type=document.file.content_type,
        )
        self.runner.spawn(document.document_id, self._process_document(document.document_id))

        return Receipt(
            entity_id=document.document_id,
            status=EntityStatus.RECEIVED,
            estimated_time=estimate_processing_time(file_type=document.file.content_type),
            message=DOCUMENT_RECEIVED_MESSAGE,
        )

    async def record_answered_query(
        self,
        query_text: str,
        user_id: str,
        query_type: QueryType,
        answer: str,
        references: list[Reference],
        processing_time: float,
        source: Source = Source.WHATSAPP,
    ) -> QueryRecord:
        """Store a query that was answered on the spot, already completed."""
        classification = classify_query(query_text)
        max_length = (await self.current_limits()).max_query_length
        query = QueryRecord(
            query_id=_new_id(),
            user_id=user_id,
            query_text=query_text.strip()[:max_length],
            query_type=query_type,
            intent=classification.intent,
            keywords=classification.keywords,
            source=source,
        )
        query = transition(query, EntityStatus.PROCESSING)
        query = transition(
            query,
            EntityStatus.COMPLETED,
            answer=answer,
            references=references,
            processing_time=processing_time,
        )
        await query_store.save_query(self.client, query)
        logger.info("Answered query recorded", query_id=query.query_id, query_type=query.query_type)
        return query

    # -- Status ------------------------------------------------------------

    async def get_query_status(self, query_id: str) -> QueryRecord:
        """Raises NotFoundError if the query does not exist."""
        query = await query_store.get_query(self.client, query_id)
        if query is None:
            raise NotFoundError("query", query_id)
        return query

    async def get_document_status(self, document_id: str) -> DocumentRecord:
        """Raises NotFoundError if the document does not exist."""
        document = await document_store.get_document(self.client, document_id)
        if document is None:
            raise NotFoundError("document", document_id)
        return document

    # -- Background processing ----------------------------------------------

    async def _process_query(self, query_id: str, delay_seconds: float = 0.0) -> None:
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

        query = transition(await self.get_query_status(query_id), EntityStatus.PROCESSING)
        await query_store.save_query(self.client, query)
        limits = await self.current_limits()

        start_time = time.perf_counter()
        try:
            answer = await asyncio.wait_for(self._answer_query(query), timeout=limits.query_timeout)
        except asyncio.TimeoutError:
            query = transition(query, EntityStatus.FAILED, error=str(ProcessingTimeout(limits.query_timeout)))
        except Exception as e:
            logger.error("Query processing failed", query_id=query_id, error=str(e), exc_info=True)
            query = transition(query, EntityStatus.FAILED, error=str(e) or type(e).__name__)
        else:
            query = transition(
                query,
                EntityStatus.COMPLETED,
                answer=answer.answer,
                references=answer.references,
                case_laws=answer.case_laws,
                processing_time=round(time.perf_counter() - start_time, 3),
            )

        await query_store.save_query(self.client, query)
        logger.info("Query processed", query_id=query_id, status=query.status, processing_time=query.processing_time)

        if query.source == Source.WHATSAPP.value:
            await self._deliver(query)

    async def _answer_query(self, query: QueryRecord) -> QueryAnswer:
        answer = await self.reasoning.respond(query)
        try:
            related = await self.case_law.find_for_query(query)
        except Exception as e:
            logger.warning("Case law enrichment skipped", query_id=query.query_id, error=str(e))
            related = []
        return answer.model_copy(update={"case_laws": merge_case_laws(answer.case_laws, related)})

    async def _process_document(self, document_id: str) -> None:
        document = transition(await self.get_document_status(document_id), EntityStatus.PROCESSING)
        await document_store.save_document(self.client, document)
        limits = await self.current_limits()

        start_time = time.perf_counter()
        try:
            analysis, related = await asyncio.wait_for(
                self._analyze_document(document), timeout=limits.document_timeout
            )
        except asyncio.TimeoutError:
            document = transition(document, EntityStatus.FAILED, error=str(ProcessingTimeout(limits.document_timeout)))
        except Exception as e:
            logger.error("Document processing failed", document_id=document_id, error=str(e), exc_info=True)
            document = transition(document, EntityStatus.FAILED, error=str(e) or type(e).__name__)
        else:
            document = transition(
                document,
                EntityStatus.COMPLETED,
                analysis=analysis.analysis,
                recommendations=analysis.recommendations,
                case_law_references=related,
                processing_time=round(time.perf_counter() - start_time, 3),
            )

        await document_store.save_document(self.client, document)
        logger.info("Document processed", document_id=document_id, status=document.status)

        if document.source == Source.WHATSAPP.value:
            await self._deliver(document)

    async def _analyze_document(self, document: DocumentRecord):
        analysis = await self.document_processor.analyze(document)
        try:
            related = await self.case_law.find_for_document(document)
        except Exception as e:
            logger.warning("Case law enrichment skipped", document_id=document.document_id, error=str(e))
            related = []
        return analysis, dedupe_by_citation(related)

    async def _deliver(self, entity: QueryRecord | DocumentRecord) -> None:
        if self.delivery is None:
            return
        if not (await self.current_limits()).notifications_enabled:
            logger.info("Result delivery disabled by operator settings", entity_status=entity.status)
            return
        try:
            await self.delivery.deliver(entity)
        except Exception as e:
            # Delivery never changes entity status
            logger.error("Result delivery failed", entity_status=entity.status, error=str(e), exc_info=True)
