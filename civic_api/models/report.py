"""SQLAlchemy ORM model for citizen-submitted civic issue reports."""
from __future__ import annotations

import uuid

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Float, Integer, String, Text, false
from sqlalchemy.dialects.postgresql import UUID

from civic_api.database import Base

from .base import TimestampMixin


class Report(TimestampMixin, Base):
    __tablename__ = "civic_reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Ownership is a plain reference; users live in a separate service.
    user_id = Column(String(64), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(32), nullable=False, index=True)
    priority = Column(String(16), nullable=False, index=True)
    department = Column(String(120), nullable=False)

    media_urls = Column(JSON, nullable=False, default=list)
    audio_url = Column(String(1024), nullable=True)

    latitude = Column(Float, nullable=True, index=True)
    longitude = Column(Float, nullable=True, index=True)
    address = Column(String(500), nullable=True)

    is_resolved = Column(Boolean, nullable=False, default=False, server_default=false(), index=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    # Seconds between created_at and resolved_at.
    time_taken_to_resolve = Column(Float, nullable=True)

    version = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(is_resolved AND resolved_at IS NOT NULL AND time_taken_to_resolve >= 0)"
            " OR (NOT is_resolved AND resolved_at IS NULL AND time_taken_to_resolve IS NULL)",
            name="ck_civic_reports_resolution_consistent",
        ),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Report {self.id} {self.category} resolved={self.is_resolved}>"


__all__ = ["Report"]
