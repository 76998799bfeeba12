"""Health check schemas."""

from typing import Dict, Optional

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    redis: Optional[str] = None
    sources: Dict[str, str] = {}
    translation_provider: Optional[str] = None
