from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class ErrorRecord(BaseModel):
    """A reported error as handed to sinks and external reporters."""

    kind: str  # module-qualified class name
    message: str
    level: int
    level_name: str
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    traceback: str | None = None


class ReportBatch(BaseModel):
    """Batch of error records for webhook delivery."""

    batch_id: str
    service: str
    records: list[ErrorRecord]
    sent_at: datetime
