"""
webhook.py - Inbound GitHub webhook.

Signature check and decoding happen inline; the audit itself runs as a
supervised background task and the request returns 202 immediately.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from phiguard.errors import AuthenticationError, ParseError
from phiguard.schemas.webhook import WebhookAck
from phiguard.services.security.signature import SIGNATURE_HEADER, verify_signature
from phiguard.services.webhook.decoder import DELIVERY_HEADER, EVENT_HEADER, decode_event
from phiguard.worker import SupervisorClosed

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["webhook"],
)
async def receive_webhook(request: Request) -> WebhookAck:
    context = request.app.state.context
    if not context.supervisor.accepting:
        raise HTTPException(status_code=503, detail="Shutting down")

    body = await request.body()
    delivery_id = request.headers.get(DELIVERY_HEADER)

    try:
        verify_signature(
            context.settings.WEBHOOK_SECRET,
            request.headers.get(SIGNATURE_HEADER),
            body,
        )
    except AuthenticationError as e:
        logger.warning("Rejected delivery %s: %s", delivery_id, e.message)
        raise HTTPException(status_code=401, detail=e.to_dict())

    try:
        event = decode_event(request.headers.get(EVENT_HEADER), body, delivery_id)
    except ParseError as e:
        logger.warning("Malformed delivery %s: %s", delivery_id, e.message)
        raise HTTPException(status_code=400, detail=e.to_dict())

    if event is None:
        return WebhookAck(status="ignored", delivery_id=delivery_id)

    try:
        context.supervisor.spawn(
            context.pipeline.run(event),
            name=f"audit:{event.full_name}#{event.pr_number}:{delivery_id}",
        )
    except SupervisorClosed:
        raise HTTPException(status_code=503, detail="Shutting down")

    logger.info(
        "Accepted %s for %s#%s (delivery=%s)",
        event.action,
        event.full_name,
        event.pr_number,
        delivery_id,
    )
    return WebhookAck(status="accepted", delivery_id=delivery_id)
