"""
API response models for wuzzlmoasta's JSON endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation.
"""

from pydantic import BaseModel, ConfigDict


class HealthComponents(BaseModel):
    model_config = ConfigDict(frozen=True)

    app: str = "ok"
    database: str


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: HealthComponents
