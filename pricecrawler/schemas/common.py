"""Common Pydantic schemas used across the API."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class SourceFailureResponse(BaseModel):
    """One source that failed to answer a query."""

    source: str
    store: str
    kind: str
    message: str


class ApiResponse(BaseModel):
    """Standard API response envelope.

    ``failures`` is populated on partial success as well as on total
    failure, so clients can show which stores did not answer.
    """

    success: bool = True
    data: Any = None
    error: Optional[str] = None
    failures: List[SourceFailureResponse] = Field(default_factory=list)
    message: Optional[str] = None
