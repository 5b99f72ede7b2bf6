"""Webhook endpoint - single page sync on provider events."""

import json

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pagesync.api.auth import verify_webhook_signature
from pagesync.api.dependencies import (
    OrchestratorFactory,
    get_database,
    get_datasource_configs,
    get_orchestrator_factory,
)
from pagesync.api.models import ErrorResponse, WebhookResponse
from pagesync.observability.tracing import get_tracer, traced
from pagesync.storage.database import Database
from pagesync.sync.config import DataSourceConfig
from pagesync.sync.service import find_datasource

logger = structlog.get_logger(__name__)
router = APIRouter()
tracer = get_tracer(__name__)

PAGE_UPDATE_EVENT = "page.update"


def _extract_target(payload: dict) -> tuple[str, str] | None:
    """(page_id, data_source_id) of a page-update event, else None."""
    if payload.get("event") != PAGE_UPDATE_EVENT:
        return None
    page = payload.get("page") or {}
    page_id = page.get("id")
    data_source_id = (page.get("parent") or {}).get("data_source_id")
    if not page_id or not data_source_id:
        return None
    return page_id, data_source_id


@router.post(
    "/webhooks/notion",
    response_model=WebhookResponse,
    responses={
        401: {"description": "Invalid signature"},
        404: {"model": WebhookResponse, "description": "Datasource not configured"},
        500: {"model": ErrorResponse},
    },
    summary="Receive a provider page event",
)
async def notion_webhook(
    body: bytes = Depends(verify_webhook_signature),
    db: Database = Depends(get_database),
    configs: list[DataSourceConfig] = Depends(get_datasource_configs),
    factory: OrchestratorFactory = Depends(get_orchestrator_factory),
) -> JSONResponse:
    """
    Re-sync the page named in a page-update event.

    Verification handshakes are acknowledged; other events are ignored
    with a 200 so the provider does not redeliver them.
    """
    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body"})

    if "verification_token" in payload:
        logger.info("webhook_verification_received")
        return JSONResponse(content={"message": "Verification token received"})

    target = _extract_target(payload)
    if target is None:
        logger.debug("webhook_ignored", reason="non_page_update_or_invalid_payload")
        return JSONResponse(content={"message": "Ignoring non-page-update event"})

    page_id, data_source_id = target
    config = find_datasource(configs, data_source_id)
    if config is None:
        logger.warning("webhook_datasource_not_found", data_source_id=data_source_id)
        return JSONResponse(
            status_code=404,
            content={"message": f"Datasource {data_source_id} not configured"},
        )

    logger.info("webhook_received", page_id=page_id, datasource=config.alias)
    try:
        with traced(tracer, "webhook_process_page", {"page_id": page_id, "datasource": config.alias}):
            orchestrator = factory(config, db)
            async with orchestrator:
                await orchestrator.process_page_id(page_id)
    except Exception as e:
        logger.error("webhook_processing_failed", page_id=page_id, error=str(e), exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    logger.info("webhook_processed", page_id=page_id)
    return JSONResponse(content={"message": f"Successfully processed page {page_id}"})
