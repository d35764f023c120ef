from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.growshare.models import Base, new_id

if TYPE_CHECKING:
    from app.growshare.models import User
    from app.growshare.modules.contributions.models import Contribution
    from app.growshare.modules.donations.models import Donation


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("idx_projects_user_id", "user_id"),
        Index("idx_projects_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    goal: Mapped[float] = mapped_column(Float, nullable=False)
    # Running total; only ever incremented alongside a Donation insert.
    current_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    image: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped["User"] = relationship(back_populates="projects", lazy="joined")
    donations: Mapped[list["Donation"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="select",
    )
    contributions: Mapped[list["Contribution"]] = relationship(
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="select",
    )
