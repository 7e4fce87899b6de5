import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SqlEnum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class VisitStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    denied = "denied"


class Visit(Base):
    __tablename__ = "visits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # No FK: visitor profiles and visits are kept consistent cooperatively.
    visitor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    visitor_name: Mapped[str] = mapped_column(String(120), default="")
    visitor_email: Mapped[str] = mapped_column(String(255), default="")
    visitor_phone: Mapped[str] = mapped_column(String(40), default="")
    visitor_company: Mapped[str] = mapped_column(String(160), default="")
    purpose: Mapped[str] = mapped_column(Text, default="")
    host_name: Mapped[str] = mapped_column(String(120), default="")
    host_department: Mapped[str] = mapped_column(String(120), default="")
    visit_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    expected_arrival_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    expected_departure_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status: Mapped[VisitStatus] = mapped_column(
        SqlEnum(VisitStatus), nullable=False, default=VisitStatus.pending, index=True
    )
    qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str] = mapped_column(Text, default="")
    denial_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_check_in_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    last_check_in_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_check_out_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    visit_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
