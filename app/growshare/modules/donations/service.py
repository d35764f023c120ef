from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, update

from app.growshare.audit import record_event
from app.growshare.utils import iso

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.growshare.models import User
    from app.growshare.modules.donations.models import Donation
    from app.growshare.modules.projects.models import Project


def donation_dict(donation: "Donation", *, include_donor: bool = False, include_project_title: bool = False) -> dict:
    out = {
        "id": donation.id,
        "amount": donation.amount,
        "message": donation.message,
        "createdAt": iso(donation.created_at),
        "projectId": donation.project_id,
        "userId": donation.user_id,
    }
    if include_donor:
        out["user"] = {"name": donation.user.name}
    if include_project_title:
        out["projectTitle"] = donation.project.title
    return out


def list_project_donations(s: "Session", project_id: str) -> list["Donation"]:
    from app.growshare.modules.donations.models import Donation

    return (
        s.query(Donation)
        .filter(Donation.project_id == project_id)
        .order_by(Donation.created_at.desc(), Donation.id.desc())
        .all()
    )


def list_user_donations(s: "Session", user_id: str, *, offset: int, limit: int) -> tuple[list["Donation"], int]:
    from app.growshare.modules.donations.models import Donation

    donations = (
        s.query(Donation)
        .filter(Donation.user_id == user_id)
        .order_by(Donation.created_at.desc(), Donation.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    total = s.query(func.count(Donation.id)).filter(Donation.user_id == user_id).scalar() or 0
    return donations, total


def total_donated(s: "Session", user_id: str) -> float:
    from app.growshare.modules.donations.models import Donation

    return s.query(func.coalesce(func.sum(Donation.amount), 0)).filter(Donation.user_id == user_id).scalar() or 0


def create_donation(s: "Session", project: "Project", payload: dict, user: "User") -> "Donation":
    """
    Insert a donation and bump the project's raised amount.

    The increment is a single UPDATE ... SET current_amount = current_amount + :amount,
    so concurrent donations never overwrite each other. Both statements belong to the
    caller's transaction: commit once, or roll back and neither is persisted.
    """
    from app.growshare.modules.donations.models import Donation
    from app.growshare.modules.projects.models import Project

    amount = payload["amount"]
    donation = Donation(
        amount=amount,
        message=payload.get("message"),
        project_id=project.id,
        user_id=user.id,
    )
    s.add(donation)
    s.flush()

    s.execute(
        update(Project)
        .where(Project.id == project.id)
        .values(current_amount=Project.current_amount + amount)
        .execution_options(synchronize_session=False)
    )
    s.expire(project, ["current_amount"])

    record_event(
        s,
        actor=user,
        action="donation.create",
        entity_type="Donation",
        entity_id=donation.id,
        metadata={"project_id": project.id, "amount": amount},
    )
    return donation
