"""
Log record model buffered by a capture session.
"""

import enum
from datetime import datetime, timezone

from pydantic import BaseModel, Field


class LogType(str, enum.Enum):
    LOG = "log"
    ERROR = "error"


class LogRecord(BaseModel):
    id: str
    type: LogType
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
