from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..catalog import BadgeType
from ..db import get_db
from ..models import Badge, Explanation
from ..progress import get_progress
from ..schemas import BadgeOut, ProgressOut, RecentActivity
from ..session_gate import require_ready_user
from .auth import User

router = APIRouter(prefix="/progress", tags=["progress"])

RECENT_ACTIVITY_LIMIT = 10


def _badge_out(row: Badge) -> BadgeOut:
	# Raises UnknownBadge for labels outside the closed set
	badge = BadgeType.from_label(row.badge_type)
	return BadgeOut(
		badge_type=badge.name,
		label=badge.label,
		icon=badge.icon,
		color=badge.color,
		earned_at=row.earned_at,
	)


@router.get("", response_model=ProgressOut)
async def read_progress(user: User = Depends(require_ready_user), db: Session = Depends(get_db)):
	progress = get_progress(db, user.id)
	badges = db.query(Badge).filter(Badge.user_id == user.id).order_by(Badge.earned_at.desc()).all()
	recent = (
		db.query(Explanation)
		.filter(Explanation.user_id == user.id)
		.order_by(Explanation.created_at.desc())
		.limit(RECENT_ACTIVITY_LIMIT)
		.all()
	)
	return ProgressOut(
		total_explanations=progress.total_explanations,
		current_streak=progress.current_streak,
		longest_streak=progress.longest_streak,
		total_stars=progress.total_stars,
		last_activity_date=progress.last_activity_date,
		badges=[_badge_out(b) for b in badges],
		recent_activity=[RecentActivity(id=r.id, topic=r.topic, created_at=r.created_at) for r in recent],
	)
