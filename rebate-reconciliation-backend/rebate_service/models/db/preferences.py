from __future__ import annotations
"""SQLAlchemy model for per-client dashboard preferences."""
from sqlalchemy import Integer, String, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from rebate_service.database import Base

class UserPreference(Base):
    __tablename__ = "user_preferences"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # Browser/user key supplied by the dashboard (X-Client-ID header)
    client_id: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    items_per_page: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("items_per_page > 0", name="items_per_page_positive"),
    )
