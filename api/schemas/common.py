"""
Shared response models.

JSON bodies use camelCase keys (``releaseYear``, ``availableLanguages``);
``CamelModel`` maps them onto snake_case attributes so Python code never
sees the wire spelling.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Envelope of every failed request."""

    success: bool = Field(default=False, description="Always false for errors.")
    error: str = Field(..., description="Short reason, e.g. 'Song not found'.")
    message: str | None = Field(default=None, description="Longer explanation, when useful.")
