from __future__ import annotations

import orjson
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from api.auth import User, get_current_user, require_admin
from api.dependencies import Services, get_services
from api.errors import DeliveryFailure, InvalidInputError
from api.models import (
    MessageHistoryResponse,
    MessageView,
    WebhookResponse,
    WhatsAppMediaRequest,
    WhatsAppSendRequest,
    WhatsAppSendResponse,
    WhatsAppTemplateRequest,
)
from api.whatsapp import (
    InboundMessage,
    WhatsAppWebhookPayload,
    extract_inbound_messages,
    format_phone_number,
    mask_phone,
    verify_webhook_signature,
)
from libs.firestore import messages as message_store
from libs.firestore.system_settings import get_system_settings
from libs.firestore.users import get_user_by_phone
from libs.models.firestore import WhatsAppMessageRecord

logger = structlog.get_logger(__name__)
router = APIRouter()


def parse_webhook_body(data: dict) -> list[InboundMessage]:
    """Accept either a Meta Graph payload or a single flat message."""
    if "entry" in data:
        return extract_inbound_messages(WhatsAppWebhookPayload.model_validate(data))
    return [InboundMessage.model_validate(data)]


@router.get("/whatsapp/webhook", response_class=PlainTextResponse, tags=["WhatsApp"])
async def verify_whatsapp_webhook(
    hub_mode: str = Query("", alias="hub.mode"),
    hub_challenge: str = Query("", alias="hub.challenge"),
    hub_verify_token: str = Query("", alias="hub.verify_token"),
    services: Services = Depends(get_services),
) -> str:
    """WhatsApp webhook verification endpoint.

    Meta sends a GET request to verify the webhook URL during setup.
    This endpoint validates the verify token and returns the challenge.

    Raises:
        HTTPException: 403 if verification fails

    Example:
        ```bash
        curl "http://localhost:8000/api/whatsapp/webhook?hub.mode=subscribe&hub.verify_token=YOUR_TOKEN&hub.challenge=CHALLENGE"
        ```
    """
    verify_token = services.settings.whatsapp_verify_token

    if not verify_token:
        logger.warning("WhatsApp webhook verification attempted but not configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="WhatsApp webhook not configured",
        )

    if hub_mode == "subscribe" and hub_verify_token == verify_token:
        logger.info("WhatsApp webhook verified successfully")
        return hub_challenge

    logger.warning(
        "WhatsApp webhook verification failed",
        hub_mode=hub_mode,
        token_match=hub_verify_token == verify_token,
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Verification failed",
    )


@router.post("/whatsapp/webhook", response_model=WebhookResponse, tags=["WhatsApp"])
async def receive_whatsapp_webhook(
    request: Request,
    services: Services = Depends(get_services),
) -> WebhookResponse:
    """WhatsApp webhook endpoint for receiving messages.

    Accepts Meta Graph webhook payloads and flat messages of the form
    ``{"from": ..., "body": ..., "message_type": ..., "media_url": ...}``.
    Every message is classified and answered immediately.

    Processing errors are logged and answered with 200 so the provider
    does not retry. Only a bad signature is rejected.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/whatsapp/webhook \\
          -H "Content-Type: application/json" \\
          -d '{"from": "0712345678", "body": "What are my rights if arrested?"}'
        ```
    """
    request_id = getattr(request.state, "request_id", "unknown")
    body = await request.body()

    app_secret = services.settings.whatsapp_app_secret
    if app_secret:
        signature = request.headers.get("X-Hub-Signature-256", "")
        if not verify_webhook_signature(body, signature, app_secret):
            logger.warning("Invalid WhatsApp webhook signature", request_id=request_id)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid signature",
            )

    try:
        messages = parse_webhook_body(orjson.loads(body))
    except (orjson.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning("Unreadable WhatsApp webhook payload", request_id=request_id, error=str(e))
        return WebhookResponse(success=False, message="Unreadable payload")

    system_settings = await get_system_settings(services.firestore)
    if not system_settings.whatsapp_enabled:
        logger.info("WhatsApp disabled, webhook ignored", request_id=request_id, count=len(messages))
        return WebhookResponse(success=False, message="WhatsApp integration is disabled")

    response = WebhookResponse(success=True)
    for message in messages:
        try:
            reply = await services.conversation.handle_incoming(message)
        except Exception as e:
            logger.error(
                "WhatsApp webhook processing failed",
                request_id=request_id,
                phone_number=mask_phone(message.from_),
                error=str(e),
                exc_info=True,
            )
            response.success = False
            continue
        response.processed += 1
        response.intent = reply.intent.value
        response.message = reply.message

    logger.info(
        "WhatsApp webhook processed",
        request_id=request_id,
        received=len(messages),
        processed=response.processed,
    )
    return response


@router.post("/whatsapp/send", response_model=WhatsAppSendResponse, tags=["WhatsApp"])
async def send_whatsapp_message(
    send_request: WhatsAppSendRequest,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> WhatsAppSendResponse:
    """Send a text message to a phone number and log it.

    Raises:
        HTTPException: 400 for an invalid number, 502 if WhatsApp rejects the message
    """
    try:
        phone = format_phone_number(send_request.to, services.settings.default_country_code)
        result = await services.transport.send_text(phone, send_request.message)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DeliveryFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await _log_outgoing(services, phone, send_request.message, "text")
    return WhatsAppSendResponse(success=True, message_id=_message_id(result))


@router.post("/whatsapp/template", response_model=WhatsAppSendResponse, tags=["WhatsApp"])
async def send_whatsapp_template(
    template_request: WhatsAppTemplateRequest,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> WhatsAppSendResponse:
    """Send a pre-approved template message."""
    try:
        phone = format_phone_number(template_request.to, services.settings.default_country_code)
        result = await services.transport.send_template(
            phone,
            template_request.template_name,
            language=template_request.language,
            components=template_request.components,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DeliveryFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await _log_outgoing(services, phone, template_request.template_name, "template")
    return WhatsAppSendResponse(success=True, message_id=_message_id(result))


@router.post("/whatsapp/media", response_model=WhatsAppSendResponse, tags=["WhatsApp"])
async def send_whatsapp_media(
    media_request: WhatsAppMediaRequest,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
) -> WhatsAppSendResponse:
    """Send a media link, such as a court document, to a phone number."""
    try:
        phone = format_phone_number(media_request.to, services.settings.default_country_code)
        result = await services.transport.send_media(
            phone,
            media_request.media_type,
            media_request.media_url,
            caption=media_request.caption,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DeliveryFailure as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await _log_outgoing(
        services,
        phone,
        media_request.caption or "",
        media_request.media_type,
        media_url=media_request.media_url,
    )
    return WhatsAppSendResponse(success=True, message_id=_message_id(result))


@router.get("/whatsapp/history/{phone}", response_model=MessageHistoryResponse, tags=["WhatsApp"])
async def get_whatsapp_history(
    phone: str,
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> MessageHistoryResponse:
    """Return the newest messages exchanged with a phone number."""
    try:
        normalized = format_phone_number(phone, services.settings.default_country_code)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not current_user.is_admin:
        owner = await get_user_by_phone(services.firestore, normalized)
        if owner is None or owner.uid != current_user.uid:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to read this history")

    history = await message_store.get_message_history(services.firestore, normalized, limit=limit)
    return MessageHistoryResponse(
        count=len(history),
        messages=[MessageView.from_record(message) for message in history],
    )


def _message_id(result: dict) -> str | None:
    return (result.get("messages") or [{}])[0].get("id")


async def _log_outgoing(
    services: Services,
    phone: str,
    content: str,
    message_type: str,
    media_url: str | None = None,
) -> None:
    user = await get_user_by_phone(services.firestore, phone)
    await message_store.create_message(
        services.firestore,
        WhatsAppMessageRecord(
            message_id=message_store.new_message_id(),
            user_id=user.uid if user else "system",
            phone_number=phone,
            direction="outgoing",
            message_type=message_type,
            content=content,
            media_url=media_url,
            status="sent",
        ),
    )
