import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class CheckIn(Base):
    __tablename__ = "qr_checkins"
    __table_args__ = (
        # At most one open check-in per visit.
        Index(
            "uq_qr_checkins_open_visit",
            "visit_id",
            unique=True,
            sqlite_where=text("check_out_time IS NULL"),
            postgresql_where=text("check_out_time IS NULL"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    visit_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    visitor_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    check_in_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    check_in_location: Mapped[str] = mapped_column(String(160), default="")
    check_out_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    check_out_location: Mapped[str | None] = mapped_column(String(160), nullable=True)
    verified_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
