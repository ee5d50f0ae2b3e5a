"""
Base schemas used across the application.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Serialises with the dashboard's camelCase keys; accepts either form on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ErrorResponse(BaseModel):
    """Envelope returned by the exception handlers."""
    success: bool = False
    message: str
    request_id: Optional[str] = None
