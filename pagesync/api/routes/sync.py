"""Poll endpoint - batch sync triggered by a scheduler."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from pagesync.api.auth import verify_cron_secret
from pagesync.api.dependencies import get_database, get_datasource_configs
from pagesync.api.models import ErrorResponse, SyncResponse
from pagesync.errors import DataSourceNotFoundError
from pagesync.provider.schemas import ensure_utc
from pagesync.storage.database import Database
from pagesync.sync.config import DataSourceConfig
from pagesync.sync.service import sync_from_provider

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.api_route(
    "/sync",
    methods=["GET", "POST"],
    response_model=SyncResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"description": "Requested datasource is not configured"},
        500: {"model": SyncResponse, "description": "At least one datasource failed"},
    },
    summary="Run a sync sweep",
)
async def run_sync(
    since: datetime | None = Query(default=None, description="Only pages edited after this time"),
    sync_all: bool = Query(default=False, alias="syncAll", description="Ignore 'since' and sync every page"),
    wipe: bool = Query(default=False, description="Delete stored records before syncing"),
    database_id: str | None = Query(
        default=None, alias="database", description="Datasource alias or provider id"
    ),
    _secret: str = Depends(verify_cron_secret),
    db: Database = Depends(get_database),
    configs: list[DataSourceConfig] = Depends(get_datasource_configs),
) -> JSONResponse:
    """
    Sync one or all configured datasources.

    Responds 200 when every datasource succeeded and 500 when any
    summary reports an error; the body carries the summaries either way.
    """
    try:
        result = await sync_from_provider(
            configs,
            db,
            datasource=database_id,
            since=ensure_utc(since),
            sync_all=sync_all,
            wipe=wipe,
        )
    except DataSourceNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        logger.error("poll_sync_failed", error=str(e), exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return JSONResponse(
        status_code=500 if result.has_errors else 200,
        content=result.to_dict(),
    )
