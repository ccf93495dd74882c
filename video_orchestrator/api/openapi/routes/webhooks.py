"""Provider callback endpoint."""

from typing import Annotated

from fastapi import APIRouter, Header, Request
from pydantic import BaseModel, Field

from video_orchestrator.api.dependencies import TaskRunnerDep, WebhookProcessorDep
from video_orchestrator.api.middleware.error_handler import APIError
from video_orchestrator.application.services.webhook_processor import (
    InvalidWebhookPayloadError,
)

router = APIRouter()


class WebhookAck(BaseModel):
    """Acknowledgement returned to the provider."""

    received: bool = Field(default=True)
    event_type: str = Field(description="Provider event type")


@router.post(
    "/webhooks/provider",
    response_model=WebhookAck,
    summary="Receive a provider callback",
    description=(
        "Verifies and acknowledges the callback at once; the merge into the "
        "video record runs in the background."
    ),
    responses={401: {"description": "Signature verification failed"}},
)
async def receive_webhook(
    request: Request,
    processor: WebhookProcessorDep,
    runner: TaskRunnerDep,
    mux_signature: Annotated[str | None, Header(alias="mux-signature")] = None,
) -> WebhookAck:
    raw_body = await request.body()
    processor.authenticate(raw_body, mux_signature)
    try:
        event = processor.parse(raw_body)
    except InvalidWebhookPayloadError as e:
        raise APIError(code="INVALID_PAYLOAD", message=str(e)) from e

    runner.submit(
        processor.process(event, raw_body),
        name=f"webhook:{event.event_type}:{event.external_asset_id}",
    )
    return WebhookAck(event_type=event.event_type)
