"""WhatsApp conversation handling.

Each inbound message is logged, its intent classified and a reply sent at
once. Greeting, help and lawyer replies are canned. Arrest, bail, court and
rights replies are canned but also recorded as answered queries. Document
references and general questions go through the integration coordinator.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import structlog
from google.cloud.firestore_v1.async_client import AsyncClient

from api.classifier import ConversationIntent, classify_intent
from api.errors import DeliveryFailure
from api.orchestrators.coordinator import DocumentSubmission, IntegrationCoordinator
from api.whatsapp import InboundMessage, WhatsAppClient, format_phone_number, mask_phone
from libs.firestore import messages as message_store
from libs.firestore.users import create_user_profile, get_user_by_phone
from libs.models.firestore import FileMetadata, QueryType, Reference, Source, UserRecord, WhatsAppMessageRecord

logger = structlog.get_logger(__name__)

WEBSITE = "www.sureintel.co.ke"

GREETING_RESPONSE = """Hello! Welcome to the Kenya Criminal Legal Agent Assistant. How can I help you today? You can ask me about:

1. Your rights if arrested
2. Bail and bond procedures
3. Court processes
4. Finding a lawyer
5. Any other legal questions"""

HELP_RESPONSE = """I'm here to help with your legal questions. Here are some things I can assist with:

1. Explaining your rights under Kenyan law
2. Providing information about arrest procedures
3. Explaining bail and bond processes
4. Guiding you through court procedures
5. Helping you understand legal documents

Just type your question, and I'll do my best to assist you."""

LAWYER_RESPONSE = """To find a lawyer in Kenya, you have several options:

1. Law Society of Kenya (LSK) - Contact them at +254 720 904 294 or visit www.lsk.or.ke
2. Legal Aid Centre of Eldoret (LACE) - For those in Western Kenya
3. Kituo Cha Sheria - Provides free legal advice, contact +254 727 773 991
4. FIDA Kenya - Specializes in women's rights issues

If you can't afford a lawyer, you may qualify for free legal aid under the Legal Aid Act. Would you like more specific information about legal aid services?"""

ARREST_RIGHTS_RESPONSE = """If you are arrested in Kenya, you have the following rights:

1. Right to be informed promptly of the reason for arrest
2. Right to remain silent
3. Right to communicate with an advocate and other persons
4. Right to be brought before a court within 24 hours
5. Right not to be compelled to make any confession or admission
6. Right to be released on bond or bail on reasonable conditions
7. Right to be presumed innocent until proven guilty

If any of these rights are violated, inform your lawyer immediately as evidence obtained through rights violations may be inadmissible in court."""

BAIL_INFORMATION_RESPONSE = """Bail and Bond in Kenya:

Bail is a constitutional right under Article 49(1)(h) of the Constitution of Kenya. Here's what you need to know:

1. You can apply for bail at the police station (police bail) or in court
2. The court considers factors like the seriousness of the offense, your character, and flight risk
3. Bail can be granted with or without sureties (people who guarantee your appearance)
4. Bail amounts vary based on the offense and circumstances
5. If denied bail, you can appeal the decision to a higher court

For serious offenses like murder or terrorism, bail may be harder to obtain but is still possible."""

COURT_PROCESS_RESPONSE = """The Kenyan criminal court process follows these general steps:

1. Arrest and police custody (maximum 24 hours)
2. First appearance in court (plea taking)
3. Bail/bond application
4. Pre-trial procedures (disclosure of evidence)
5. Trial (prosecution and defense present cases)
6. Judgment and sentencing (if found guilty)
7. Appeal (if desired)

The process can take anywhere from a few months to several years depending on the complexity of the case and court backlog. During this time, you have the right to legal representation and fair treatment."""

LEGAL_RIGHTS_RESPONSE = """Your Legal Rights in Kenya's Criminal Justice System:

1. Right to dignity and fair treatment
2. Right to legal representation (advocate of your choice)
3. Right to be presumed innocent until proven guilty
4. Right to remain silent and not incriminate yourself
5. Right to be informed of charges in a language you understand
6. Right to a fair and public trial without unreasonable delay
7. Right to be present when being tried
8. Right to appeal to a higher court

These rights are protected under Articles 49 to 51 of the Constitution of Kenya."""

GENERAL_QUERY_RESPONSE = f"""Thank you for your question. I've recorded your query and our legal team will analyze it shortly. For complex legal matters, we recommend visiting our website at {WEBSITE} for more comprehensive assistance.

In the meantime, is there any specific aspect of Kenyan criminal law you'd like to know about?"""


@dataclass(frozen=True)
class CannedAnswer:
    """A canned reply that is also stored as a completed query."""

    response: str
    query_type: QueryType
    references: tuple[Reference, ...]
    processing_time: float


CANNED_REPLIES = {
    ConversationIntent.GREETING: GREETING_RESPONSE,
    ConversationIntent.HELP: HELP_RESPONSE,
    ConversationIntent.LAWYER_QUERY: LAWYER_RESPONSE,
}

ANSWERED_INTENTS = {
    ConversationIntent.ARREST_QUERY: CannedAnswer(
        ARREST_RIGHTS_RESPONSE,
        QueryType.PROCEDURAL_GUIDANCE,
        (
            Reference(title="Constitution of Kenya", section="Article 49", text="Rights of arrested persons"),
            Reference(title="Criminal Procedure Code", section="Section 21-24", text="Arrest procedures"),
        ),
        1.2,
    ),
    ConversationIntent.BAIL_QUERY: CannedAnswer(
        BAIL_INFORMATION_RESPONSE,
        QueryType.PROCEDURAL_GUIDANCE,
        (
            Reference(title="Constitution of Kenya", section="Article 49(1)(h)", text="Right to bail"),
            Reference(title="Criminal Procedure Code", section="Section 123", text="Bail procedures"),
        ),
        1.5,
    ),
    ConversationIntent.COURT_QUERY: CannedAnswer(
        COURT_PROCESS_RESPONSE,
        QueryType.PROCEDURAL_GUIDANCE,
        (Reference(title="Criminal Procedure Code", section="Section 200-205", text="Court procedures"),),
        1.3,
    ),
    ConversationIntent.RIGHTS_QUERY: CannedAnswer(
        LEGAL_RIGHTS_RESPONSE,
        QueryType.LEGAL_DEFINITION,
        (Reference(title="Constitution of Kenya", section="Article 49-51", text="Rights of arrested persons"),),
        1.1,
    ),
}


@dataclass
class ConversationReply:
    """What the handler sent back for one inbound message."""

    message: str
    intent: ConversationIntent
    related_query: str | None = None
    related_document: str | None = None


def parse_document_reference(body: str) -> tuple[str, str]:
    """Split a ``document:``/``file:`` message into a title and description."""
    first_line, _, rest = body.strip().partition("\n")
    _, _, title = first_line.partition(":")
    title = title.strip() or "WhatsApp document"
    return title[:100], rest.strip()[:500]


class ConversationHandler:
    """Handles one WhatsApp message at a time for a phone number.

    Args:
        client: Firestore client for users and the message ledger.
        coordinator: Receives document references and general questions.
        transport: Sends the replies.
        general_query_delay: Seconds before a general question is processed.
        country_code: Prefix used when normalizing phone numbers.
    """

    def __init__(
        self,
        client: AsyncClient,
        coordinator: IntegrationCoordinator,
        transport: WhatsAppClient,
        general_query_delay: float = 15.0,
        country_code: str = "254",
    ):
        self.client = client
        self.coordinator = coordinator
        self.transport = transport
        self.general_query_delay = general_query_delay
        self.country_code = country_code

    async def handle_incoming(self, message: InboundMessage) -> ConversationReply:
        """Process an inbound message and send the reply.

        A reply the transport fails to send is still recorded, with status
        ``failed``.

        Returns:
            The reply that was sent, with any query or document it created.

        Raises:
            InvalidInputError: If the sender is not a valid phone number.
                Nothing is stored in that case.
        """
        phone = format_phone_number(message.from_, self.country_code)
        user = await self.find_or_create_user(phone)

        await message_store.create_message(
            self.client,
            WhatsAppMessageRecord(
                message_id=message_store.new_message_id(),
                user_id=user.uid,
                phone_number=phone,
                direction="incoming",
                message_type=message.message_type,
                content=message.body,
                media_url=message.media_url,
                status="delivered",
            ),
        )

        intent = classify_intent(message.body)
        logger.info("WhatsApp message classified", phone_number=mask_phone(phone), intent=intent.value)

        reply = await self._reply_for(user, intent, message)

        send_status = "sent"
        try:
            await self.transport.send_text(phone, reply.message)
        except DeliveryFailure as e:
            logger.error("WhatsApp reply failed", phone_number=mask_phone(phone), intent=intent.value, error=str(e))
            send_status = "failed"

        await message_store.create_message(
            self.client,
            WhatsAppMessageRecord(
                message_id=message_store.new_message_id(),
                user_id=user.uid,
                phone_number=phone,
                direction="outgoing",
                content=reply.message,
                status=send_status,
                related_query=reply.related_query,
                related_document=reply.related_document,
            ),
        )
        return reply

    async def find_or_create_user(self, phone: str) -> UserRecord:
        user = await get_user_by_phone(self.client, phone)
        if user is not None:
            return user

        user = UserRecord(
            uid=f"wa_{uuid.uuid4().hex}",
            name=f"WhatsApp User {phone[-4:]}",
            phone=phone,
            whatsapp_verified=True,
        )
        await create_user_profile(self.client, user)
        logger.info("WhatsApp user provisioned", phone_number=mask_phone(phone), uid=user.uid)
        return user

    async def _reply_for(
        self, user: UserRecord, intent: ConversationIntent, message: InboundMessage
    ) -> ConversationReply:
        if not message.body.strip():
            return ConversationReply(HELP_RESPONSE, ConversationIntent.HELP)

        if intent in CANNED_REPLIES:
            return ConversationReply(CANNED_REPLIES[intent], intent)

        if intent in ANSWERED_INTENTS:
            canned = ANSWERED_INTENTS[intent]
            query = await self.coordinator.record_answered_query(
                query_text=message.body,
                user_id=user.uid,
                query_type=canned.query_type,
                answer=canned.response,
                references=list(canned.references),
                processing_time=canned.processing_time,
            )
            return ConversationReply(canned.response, intent, related_query=query.query_id)

        if intent == ConversationIntent.DOCUMENT_REFERENCE:
            title, description = parse_document_reference(message.body)
            receipt = await self.coordinator.submit_document(
                DocumentSubmission(
                    title=title,
                    description=description or None,
                    file=FileMetadata(
                        url=message.media_url or "/placeholder/path",
                        name=title,
                        content_type="text/plain",
                        size=len(message.body.encode()),
                    ),
                ),
                user_id=user.uid,
                source=Source.WHATSAPP,
            )
            return ConversationReply(receipt.message, intent, related_document=receipt.entity_id)

        max_length = (await self.coordinator.current_limits()).max_query_length
        receipt = await self.coordinator.submit_query(
            message.body[:max_length],
            user_id=user.uid,
            source=Source.WHATSAPP,
            delay_seconds=self.general_query_delay,
        )
        return ConversationReply(GENERAL_QUERY_RESPONSE, intent, related_query=receipt.entity_id)
