# =============================================================================
# core/models/base.py - Shared Schema Building Blocks
# =============================================================================

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[DataT]):
    """
    Success envelope for every endpoint.

    Example:
        {"success": true, "data": {"taskId": "...", "status": "pending"}}
    """
    success: bool = True
    data: DataT


class MessageResponse(CamelModel):
    """Payload for operations that return no entity (e.g. deletes)."""
    message: str
