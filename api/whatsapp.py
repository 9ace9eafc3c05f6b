"""WhatsApp Business API integration for the legal agent.

This module handles webhook payload parsing, signature verification, phone
number normalization and outbound messages over Meta's Graph API.
Without credentials the client runs in simulated mode
and fabricates message ids instead of calling the Graph API.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import uuid
from typing import Any, Literal

import httpx
import structlog
from pydantic import BaseModel, Field

from api.errors import DeliveryFailure, InvalidInputError
from libs.common.settings import Settings

logger = structlog.get_logger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"
MAX_MESSAGE_LENGTH = 4096
TRUNCATION_SUFFIX = "\n\n_(message truncated)_"
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15

MediaType = Literal["image", "document", "audio", "video"]
MEDIA_TYPES = ("image", "document", "audio", "video")
INBOUND_TYPES = ("text", "location", *MEDIA_TYPES)


# WhatsApp webhook models
class WhatsAppMessage(BaseModel):
    """WhatsApp incoming message model."""

    model_config = {"populate_by_name": True}

    from_: str = Field(alias="from")
    id: str
    timestamp: str
    type: str
    text: dict[str, str] | None = None
    image: dict[str, Any] | None = None
    document: dict[str, Any] | None = None
    audio: dict[str, Any] | None = None
    video: dict[str, Any] | None = None


class WhatsAppValue(BaseModel):
    """WhatsApp webhook value model."""

    messaging_product: str
    metadata: dict[str, str]
    contacts: list[dict[str, Any]] | None = None
    messages: list[WhatsAppMessage] | None = None
    statuses: list[dict[str, Any]] | None = None


class WhatsAppChange(BaseModel):
    """WhatsApp webhook change model."""

    value: WhatsAppValue
    field: str


class WhatsAppEntry(BaseModel):
    """WhatsApp webhook entry model."""

    id: str
    changes: list[WhatsAppChange]


class WhatsAppWebhookPayload(BaseModel):
    """WhatsApp webhook payload model."""

    object: str
    entry: list[WhatsAppEntry]


class InboundMessage(BaseModel):
    """A single inbound message, flattened from any webhook format."""

    model_config = {"populate_by_name": True}

    from_: str = Field(alias="from", description="Sender phone number", examples=["0712345678"])
    body: str = Field("", description="Message text")
    message_type: Literal["text", "image", "document", "audio", "video", "location"] = "text"
    media_url: str | None = None


def extract_inbound_messages(payload: WhatsAppWebhookPayload) -> list[InboundMessage]:
    """Flatten a Meta webhook payload into inbound messages.

    Status updates and non-message changes are skipped.
    """
    inbound = []
    for entry in payload.entry:
        for change in entry.changes:
            if change.field != "messages" or not change.value.messages:
                continue
            for message in change.value.messages:
                media = getattr(message, message.type) if message.type in MEDIA_TYPES else None
                body = (message.text or {}).get("body", "")
                if media and not body:
                    body = media.get("caption", "")
                inbound.append(
                    InboundMessage(
                        from_=message.from_,
                        body=body,
                        message_type=message.type if message.type in INBOUND_TYPES else "text",
                        media_url=(media or {}).get("link") or (media or {}).get("id"),
                    )
                )
    return inbound


def format_phone_number(phone: str, country_code: str = "254") -> str:
    """Normalize a phone number to digits with the country code prefix.

    Applying it twice gives the same result as applying it once. Results
    outside 10 to 15 digits are rejected with InvalidInputError.

    Example:
        >>> format_phone_number("0712 345 678")
        '254712345678'
    """
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        raise InvalidInputError("Phone number must contain digits")
    if digits.startswith(country_code):
        formatted = digits
    elif digits.startswith("0"):
        formatted = country_code + digits[1:]
    else:
        formatted = country_code + digits
    if not MIN_PHONE_DIGITS <= len(formatted) <= MAX_PHONE_DIGITS:
        raise InvalidInputError(f"Phone number must have {MIN_PHONE_DIGITS} to {MAX_PHONE_DIGITS} digits")
    return formatted


def mask_phone(phone: str) -> str:
    # Log partial number for privacy
    return phone[:6] + "****"


def format_whatsapp_text(message: str) -> str:
    """Fit a message into WhatsApp's 4096 character limit."""
    if len(message) <= MAX_MESSAGE_LENGTH:
        return message
    return message[: MAX_MESSAGE_LENGTH - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX


def verify_webhook_signature(request_body: bytes, signature: str, secret: str) -> bool:
    """Verify WhatsApp webhook signature.

    Args:
        request_body: Raw request body
        signature: Signature from X-Hub-Signature-256 header
        secret: App secret from settings

    Returns:
        True if signature is valid
    """
    if not signature or not signature.startswith("sha256="):
        return False

    expected_signature = hmac.new(
        secret.encode(),
        request_body,
        hashlib.sha256,
    ).hexdigest()

    provided_signature = signature.replace("sha256=", "", 1)

    # Use constant-time comparison to prevent timing attacks
    return hmac.compare_digest(expected_signature, provided_signature)


class WhatsAppClient:
    """Sends messages through the WhatsApp Business Graph API.

    Args:
        access_token: WhatsApp Business API access token.
        phone_number_id: WhatsApp Business phone number ID.
        api_version: Graph API version, e.g. "v18.0".
        country_code: Prefix used when normalizing recipient numbers.
        simulate: Skip the network and return fabricated message ids.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        access_token: str | None = None,
        phone_number_id: str | None = None,
        api_version: str = "v18.0",
        country_code: str = "254",
        simulate: bool | None = None,
        timeout: float = 10.0,
    ):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.country_code = country_code
        self.simulate = simulate if simulate is not None else not (access_token and phone_number_id)
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhatsAppClient":
        return cls(
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_version=settings.whatsapp_api_version,
            country_code=settings.default_country_code,
        )

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_URL}/{self.api_version}/{self.phone_number_id}/messages"

    async def send_text(self, to: str, body: str) -> dict[str, Any]:
        return await self._send(
            to,
            {
                "type": "text",
                "text": {"preview_url": True, "body": format_whatsapp_text(body)},
            },
        )

    async def send_template(
        self,
        to: str,
        template_name: str,
        language: str = "en_US",
        components: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        template: dict[str, Any] = {"name": template_name, "language": {"code": language}}
        if components:
            template["components"] = components
        return await self._send(to, {"type": "template", "template": template})

    async def send_media(
        self,
        to: str,
        media_type: MediaType,
        media_url: str,
        caption: str | None = None,
    ) -> dict[str, Any]:
        media: dict[str, Any] = {"link": media_url}
        if caption and media_type in ("image", "document", "video"):
            media["caption"] = caption
        return await self._send(to, {"type": media_type, media_type: media})

    async def _send(self, to: str, content: dict[str, Any]) -> dict[str, Any]:
        """Post a message to the Graph API.

        Raises:
            DeliveryFailure: If the API rejects the message or cannot be reached.
        """
        recipient = format_phone_number(to, self.country_code)
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            **content,
        }

        if self.simulate:
            message_id = f"wamid.{uuid.uuid4().hex}"
            logger.info(
                "WhatsApp message simulated",
                phone_number=mask_phone(recipient),
                message_type=content["type"],
                message_id=message_id,
            )
            return {
                "messaging_product": "whatsapp",
                "contacts": [{"input": recipient, "wa_id": recipient}],
                "messages": [{"id": message_id}],
            }

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.messages_url, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "WhatsApp API error",
                status_code=e.response.status_code,
                error=e.response.text,
            )
            raise DeliveryFailure(f"WhatsApp API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error("WhatsApp send error", error=str(e))
            raise DeliveryFailure(f"WhatsApp API unreachable: {e}") from e

        logger.info(
            "WhatsApp message sent",
            phone_number=mask_phone(recipient),
            message_type=content["type"],
            message_id=result.get("messages", [{}])[0].get("id"),
        )
        return result
