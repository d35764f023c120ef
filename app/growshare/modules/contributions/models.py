from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.growshare.models import Base, new_id

if TYPE_CHECKING:
    from app.growshare.models import User
    from app.growshare.modules.projects.models import Project


CONTRIBUTION_TYPES = ("FOOD", "KNOWLEDGE", "VOLUNTEER", "OTHER")


class Contribution(Base):
    """Non-monetary support for a project (food, know-how, volunteer time)."""

    __tablename__ = "contributions"
    __table_args__ = (
        Index("idx_contributions_project_id", "project_id"),
        Index("idx_contributions_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # one of CONTRIBUTION_TYPES

    project_id: Mapped[str] = mapped_column(ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    project: Mapped["Project"] = relationship(back_populates="contributions", lazy="joined")
    user: Mapped["User"] = relationship(back_populates="contributions", lazy="joined")
