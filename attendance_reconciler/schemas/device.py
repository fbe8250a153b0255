"""
Terminal sync schemas
"""
from datetime import datetime
from typing import List
from pydantic import BaseModel, field_serializer

from attendance_reconciler.schemas.attendance import ReconcileSummaryOut
from attendance_reconciler.utils.datetime_utils import iso_local


class IngestResultOut(BaseModel):
    device_id: str
    accepted: int
    rejected: int
    inserted: int
    duplicates: int
    watermark: datetime
    partial: bool

    @field_serializer("watermark", when_used="always")
    def _ser_watermark(self, dt: datetime) -> str:
        return iso_local(dt)


class SyncResponse(BaseModel):
    ingest: IngestResultOut
    reconcile: ReconcileSummaryOut


class UnmappedSubjectsOut(BaseModel):
    device_id: str
    unmapped_subjects: List[str]
