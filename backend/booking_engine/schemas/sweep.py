"""Schemas for operational sweep triggers."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SweepReport(BaseModel):
    processed: int
    skipped: int

    model_config = ConfigDict(from_attributes=True)
