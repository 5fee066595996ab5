from datetime import datetime

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request/response body with camelCase keys on the wire."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    environment: str
    database: bool
