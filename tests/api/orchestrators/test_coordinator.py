"""Tests for the integration coordinator lifecycle."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from api.agents.base import DocumentResponder, QueryAnswer, QueryResponder
from api.errors import InvalidInputError, InvalidTransitionError, NotFoundError
from api.orchestrators.coordinator import (
    DocumentSubmission,
    IntegrationCoordinator,
    estimate_processing_time,
    merge_case_laws,
    transition,
)
from libs.models.firestore import (
    CaseLawEntry,
    DocumentType,
    EntityStatus,
    FileMetadata,
    QueryRecord,
    QueryType,
    Reference,
    Source,
    UserRecord,
)
from libs.firestore.system_settings import update_system_settings
from libs.firestore.users import create_user_profile


class SlowResponder(QueryResponder):
    async def respond(self, query):
        await asyncio.sleep(10)


class BrokenResponder(QueryResponder):
    async def respond(self, query):
        raise RuntimeError("knowledge base unavailable")


class SlowDocumentResponder(DocumentResponder):
    async def analyze(self, document):
        await asyncio.sleep(10)


def rebuild(coordinator, **overrides):
    params = dict(
        client=coordinator.client,
        reasoning=coordinator.reasoning,
        case_law=coordinator.case_law,
        document_processor=coordinator.document_processor,
        runner=coordinator.runner,
        delivery=coordinator.delivery,
        timeout_seconds=coordinator.timeout_seconds,
    )
    params.update(overrides)
    return IntegrationCoordinator(**params)


def pdf_file():
    return FileMetadata(url="/uploads/bail.pdf", name="bail.pdf", content_type="application/pdf", size=2048)


async def test_definition_query_completes_with_section_296(coordinator, services):
    receipt = await coordinator.submit_query("What is the definition of robbery?", user_id="user-1")

    assert receipt.status == EntityStatus.RECEIVED
    assert receipt.estimated_time == 10

    await services.runner.join()
    query = await coordinator.get_query_status(receipt.entity_id)

    assert query.status == EntityStatus.COMPLETED.value
    assert query.query_type == QueryType.LEGAL_DEFINITION.value
    assert "Section 296" in query.answer
    assert any(ref.section == "Section 296" for ref in query.references)
    assert query.error is None
    assert query.processing_time is not None


async def test_query_is_stored_as_received_before_processing(coordinator, firestore, recording_runner):
    coordinator = rebuild(coordinator, runner=recording_runner)

    receipt = await coordinator.submit_query("How do I apply for bail?", user_id="user-1")

    stored = firestore.documents("queries")[receipt.entity_id]
    assert stored["status"] == "received"
    assert stored["answer"] is None
    assert recording_runner.spawned == [receipt.entity_id]


async def test_case_law_is_merged_without_duplicate_citations(coordinator, services):
    receipt = await coordinator.submit_query("How do I apply for bail?", user_id="user-1")
    await services.runner.join()

    query = await coordinator.get_query_status(receipt.entity_id)
    citations = [case.citation for case in query.case_laws]

    assert citations.count("Republic v Joktan Mayende & 4 others [2018] eKLR") == 1
    assert len(citations) == len(set(citations))


@pytest.mark.parametrize("text", ["", "   ", "x" * 2001])
async def test_invalid_query_is_rejected_and_not_stored(coordinator, firestore, text):
    with pytest.raises(InvalidInputError):
        await coordinator.submit_query(text, user_id="user-1")

    assert firestore.documents("queries") == {}


async def test_unknown_query_raises_not_found(coordinator, firestore):
    with pytest.raises(NotFoundError) as exc_info:
        await coordinator.get_query_status("does-not-exist")

    assert str(exc_info.value) == "Query not found: does-not-exist"
    assert firestore.documents("queries") == {}


async def test_unknown_document_raises_not_found(coordinator):
    with pytest.raises(NotFoundError):
        await coordinator.get_document_status("does-not-exist")


async def test_responder_failure_marks_query_failed(coordinator, services):
    coordinator = rebuild(coordinator, reasoning=BrokenResponder())

    receipt = await coordinator.submit_query("Define theft", user_id="user-1")
    await services.runner.join()
    query = await coordinator.get_query_status(receipt.entity_id)

    assert query.status == EntityStatus.FAILED.value
    assert query.error == "knowledge base unavailable"
    assert query.answer is None


async def test_timeout_marks_query_failed(coordinator, services):
    coordinator = rebuild(coordinator, reasoning=SlowResponder(), timeout_seconds=0.05)

    receipt = await coordinator.submit_query("Define theft", user_id="user-1")
    await services.runner.join()
    query = await coordinator.get_query_status(receipt.entity_id)

    assert query.status == EntityStatus.FAILED.value
    assert query.error == "Processing timed out after 0.05 seconds"


async def test_terminal_polls_are_identical(coordinator, services):
    receipt = await coordinator.submit_query("What is the definition of robbery?", user_id="user-1")
    await services.runner.join()

    first = await coordinator.get_query_status(receipt.entity_id)
    second = await coordinator.get_query_status(receipt.entity_id)

    assert first == second


async def test_bail_application_document_completes(coordinator, services):
    receipt = await coordinator.submit_document(
        DocumentSubmission(
            title="Bail application",
            file=pdf_file(),
            document_type=DocumentType.BAIL_APPLICATION,
        ),
        user_id="user-1",
    )

    assert receipt.estimated_time == 60

    await services.runner.join()
    document = await coordinator.get_document_status(receipt.entity_id)

    assert document.status == EntityStatus.COMPLETED.value
    assert "Article 49(1)(h)" in document.analysis
    assert len(document.recommendations) == 5
    citations = [case.citation for case in document.case_law_references]
    assert len(citations) == len(set(citations))


async def test_document_type_is_classified_when_missing(coordinator, recording_runner, firestore):
    coordinator = rebuild(coordinator, runner=recording_runner)

    receipt = await coordinator.submit_document(
        DocumentSubmission(title="Charge sheet from Kibera", file=pdf_file()),
        user_id="user-1",
    )

    assert firestore.documents("documents")[receipt.entity_id]["document_type"] == "charge_sheet"


@pytest.mark.parametrize(
    "title, description",
    [("", None), ("t" * 101, None), ("Affidavit", "d" * 501)],
)
async def test_invalid_document_is_rejected(coordinator, firestore, title, description):
    with pytest.raises(InvalidInputError):
        await coordinator.submit_document(
            DocumentSubmission(title=title, description=description, file=pdf_file()),
            user_id="user-1",
        )

    assert firestore.documents("documents") == {}


async def test_whatsapp_query_is_delivered(coordinator, services, firestore):
    await create_user_profile(firestore, UserRecord(uid="wa_1", phone="254712345678", whatsapp_verified=True))

    receipt = await coordinator.submit_query(
        "What is the definition of robbery?", user_id="wa_1", source=Source.WHATSAPP
    )
    await services.runner.join()

    messages = list(firestore.documents("whatsapp_messages").values())
    assert len(messages) == 1
    assert messages[0]["related_query"] == receipt.entity_id
    assert messages[0]["content"].startswith("*Legal Query Response*")


async def test_delivery_failure_does_not_change_status(coordinator, services, firestore):
    failing = AsyncMock()
    failing.deliver.side_effect = RuntimeError("network down")
    coordinator = rebuild(coordinator, delivery=failing)

    receipt = await coordinator.submit_query("Define theft", user_id="wa_missing", source=Source.WHATSAPP)
    await services.runner.join()

    query = await coordinator.get_query_status(receipt.entity_id)
    assert query.status == EntityStatus.COMPLETED.value
    failing.deliver.assert_awaited_once()


async def test_operator_query_length_limit_is_enforced(coordinator, firestore):
    await update_system_settings(firestore, {"max_query_length": 50})

    with pytest.raises(InvalidInputError, match="at most 50 characters"):
        await coordinator.submit_query("Can I be held without charge? " * 17, user_id="user-1")

    assert firestore.documents("queries") == {}


async def test_current_limits_take_the_stricter_value(coordinator, firestore):
    coordinator = rebuild(coordinator, timeout_seconds=200, max_query_length=1000)
    await update_system_settings(
        firestore,
        {"max_query_length": 1500, "query_processing_timeout": 30, "document_processing_timeout": 600},
    )

    limits = await coordinator.current_limits()

    assert limits.max_query_length == 1000
    assert limits.query_timeout == 30
    assert limits.document_timeout == 200
    assert limits.notifications_enabled is True


async def test_document_timeout_comes_from_operator_settings(coordinator, services, firestore):
    coordinator = rebuild(coordinator, document_processor=SlowDocumentResponder(), timeout_seconds=600)
    await update_system_settings(firestore, {"document_processing_timeout": 1, "query_processing_timeout": 300})

    receipt = await coordinator.submit_document(DocumentSubmission(title="Bail application", file=pdf_file()), "user-1")
    await services.runner.join()
    document = await coordinator.get_document_status(receipt.entity_id)

    assert document.status == EntityStatus.FAILED.value
    assert document.error == "Processing timed out after 1 seconds"


async def test_delivery_is_skipped_when_notifications_are_disabled(coordinator, services, firestore):
    delivery = AsyncMock()
    coordinator = rebuild(coordinator, delivery=delivery)
    await update_system_settings(firestore, {"notifications_enabled": False})

    receipt = await coordinator.submit_query("Define theft", user_id="wa_1", source=Source.WHATSAPP)
    await services.runner.join()

    query = await coordinator.get_query_status(receipt.entity_id)
    assert query.status == EntityStatus.COMPLETED.value
    delivery.deliver.assert_not_awaited()


async def test_record_answered_query(coordinator, firestore):
    query = await coordinator.record_answered_query(
        query_text="What happens if I am arrested?",
        user_id="wa_1",
        query_type=QueryType.PROCEDURAL_GUIDANCE,
        answer="You have rights.",
        references=[Reference(title="Constitution of Kenya", section="Article 49", text="Rights")],
        processing_time=1.2,
    )

    stored = firestore.documents("queries")[query.query_id]
    assert stored["status"] == "completed"
    assert stored["source"] == "whatsapp"
    assert stored["processing_time"] == 1.2


async def test_duplicate_spawn_is_ignored(coordinator, services):
    receipt = await coordinator.submit_query("Define theft", user_id="user-1", delay_seconds=0.05)

    spawned = services.runner.spawn(receipt.entity_id, coordinator._process_query(receipt.entity_id))
    await services.runner.join()

    assert spawned is False
    query = await coordinator.get_query_status(receipt.entity_id)
    assert query.status == EntityStatus.COMPLETED.value


def make_query(status=EntityStatus.RECEIVED):
    return QueryRecord(query_id="q", user_id="u", query_text="Define theft", status=status)


@pytest.mark.parametrize(
    "current, target",
    [
        (EntityStatus.RECEIVED, EntityStatus.COMPLETED),
        (EntityStatus.RECEIVED, EntityStatus.FAILED),
        (EntityStatus.PROCESSING, EntityStatus.RECEIVED),
    ],
)
def test_disallowed_transitions(current, target):
    with pytest.raises(InvalidTransitionError):
        transition(make_query(current), target)


def test_terminal_states_allow_no_transition():
    completed = transition(transition(make_query(), EntityStatus.PROCESSING), EntityStatus.COMPLETED, answer="a")

    for target in EntityStatus:
        with pytest.raises(InvalidTransitionError):
            transition(completed, target)


def test_result_fields_require_completed_status():
    processing = transition(make_query(), EntityStatus.PROCESSING)

    with pytest.raises(ValueError):
        transition(processing, EntityStatus.FAILED, error="boom", answer="should not be here")


def test_merge_case_laws_keeps_order_and_drops_repeats():
    a = CaseLawEntry(citation="A", title="A", summary="a")
    b = CaseLawEntry(citation="B", title="B", summary="b")

    assert merge_case_laws([a, b], [b, a]) == [a, b]


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        ({"file_type": "application/pdf"}, 60),
        ({"file_type": "image/png"}, 90),
        ({"file_type": "application/msword"}, 45),
        ({"file_type": "text/plain"}, 30),
        ({"file_type": "application/zip"}, 60),
        ({"text_length": 0, "query_type": QueryType.CASE_LAW}, 20),
        ({"text_length": 450, "query_type": QueryType.PROCEDURAL_GUIDANCE}, 17),
        ({"text_length": 10, "query_type": QueryType.GENERAL}, 15),
    ],
)
def test_estimate_processing_time(kwargs, expected):
    assert estimate_processing_time(**kwargs) == expected
