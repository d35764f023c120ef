from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.growshare.models import Base, new_id

if TYPE_CHECKING:
    from app.growshare.models import User
    from app.growshare.modules.projects.models import Project


class Donation(Base):
    __tablename__ = "donations"
    __table_args__ = (
        Index("idx_donations_project_id", "project_id"),
        Index("idx_donations_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    amount: Mapped[float] = mapped_column(Float, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    project: Mapped["Project"] = relationship(back_populates="donations", lazy="joined")
    user: Mapped["User"] = relationship(back_populates="donations", lazy="joined")
