"""
Request and response models for the trigger API.
"""

from pydantic import BaseModel, Field


class SyncSummaryItem(BaseModel):
    """Result of syncing one datasource."""

    alias: str
    data_source_id: str
    processed: int = Field(..., description="Pages written to the store")
    skipped: int = Field(..., description="Pages the builder chose not to write")
    failed: int = Field(..., description="Pages that raised while building or storing")
    status: str = Field(..., description="success or error")
    duration_ms: float
    details: str | None = Field(default=None, description="Error message for failed runs")


class SyncResponse(BaseModel):
    """Response model for the poll endpoint."""

    since: str | None = Field(default=None, description="Lower bound used for the run")
    summaries: list[SyncSummaryItem] = Field(default_factory=list)


class WebhookResponse(BaseModel):
    """Response model for the webhook endpoint."""

    message: str


class ErrorResponse(BaseModel):
    """Error body returned by the trigger endpoints."""

    error: str


class ComponentHealth(BaseModel):
    """Health status of an infrastructure component."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency in milliseconds")
    details: dict | None = Field(default=None, description="Additional details")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Overall service status: healthy or unhealthy")
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    datasources: list[str] = Field(default_factory=list, description="Configured aliases")
    version: str
