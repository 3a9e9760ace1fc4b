"""
Data models for the persisted harvest.

The snapshot is the envelope written to storage: the time of the run and
the normalized repository records, serialized with their camelCase names.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime, timezone
from dateutil import parser as date_parser
from typing import Any, Dict, List


class HarvestSnapshot(BaseModel):
    """
    Everything fetched for one owner in one run.

    Records are kept as plain dictionaries: their shape is guaranteed by
    the normalizer, not by this model.
    """
    fetched_at: datetime = Field(..., alias="fetchedAt")  # When the run started
    repositories: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator('fetched_at', mode='before')
    @classmethod
    def parse_datetime(cls, v):
        """
        Parse ISO-8601 strings such as ``2024-05-01T10:00:00.000Z``.

        Naive values are taken to be UTC.
        """
        if isinstance(v, str):
            v = date_parser.isoparse(v)
        if isinstance(v, datetime) and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    class Config:
        """Pydantic configuration for the model."""
        populate_by_name = True  # Allow both 'fetched_at' and 'fetchedAt' field names

    @property
    def count(self) -> int:
        return len(self.repositories)
