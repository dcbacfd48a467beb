from __future__ import annotations
import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from .catalog import BadgeType
from .models import Badge, FollowUp, QuizAttempt, Scan, UserProgress

logger = logging.getLogger(__name__)

CURIOUS_LEARNER_FOLLOW_UPS = 10
SCAN_MASTER_SCANS = 5


def get_progress(db: Session, user_id: str) -> Optional[UserProgress]:
	return db.query(UserProgress).filter(UserProgress.user_id == user_id).first()


def advance_streak(progress: UserProgress, today: date) -> None:
	"""Apply one day of activity to the streak counters.

	Same day keeps the streak, the next day extends it, any gap restarts at 1.
	"""
	last = progress.last_activity_date
	current = progress.current_streak or 0
	if last is None:
		current = 1
	elif last == today:
		current = max(current, 1)
	elif last == today - timedelta(days=1):
		current += 1
	else:
		current = 1
	progress.current_streak = current
	progress.longest_streak = max(progress.longest_streak or 0, current)
	progress.last_activity_date = today


def _owned_badges(db: Session, user_id: str) -> set[str]:
	return {b.badge_type for b in db.query(Badge).filter(Badge.user_id == user_id).all()}


def _stage_badges(db: Session, user_id: str, earned: List[BadgeType]) -> List[BadgeType]:
	owned = _owned_badges(db, user_id)
	new = [b for b in earned if b.label not in owned]
	for badge in new:
		db.add(Badge(user_id=user_id, badge_type=badge.label))
	if new:
		logger.info("User %s earned badges: %s", user_id, [b.label for b in new])
	return new


def stage_explanation_progress(db: Session, progress: UserProgress, today: Optional[date] = None) -> List[BadgeType]:
	"""Count one more explanation, move the streak and queue any badges earned."""
	progress.total_explanations = (progress.total_explanations or 0) + 1
	advance_streak(progress, today or date.today())
	earned: List[BadgeType] = []
	if progress.total_explanations >= 1:
		earned.append(BadgeType.FIRST_EXPLANATION)
	if progress.total_explanations >= 10:
		earned.append(BadgeType.TEN_EXPLANATIONS)
	if progress.total_explanations >= 50:
		earned.append(BadgeType.FIFTY_EXPLANATIONS)
	if progress.current_streak >= 7:
		earned.append(BadgeType.WEEK_STREAK)
	if progress.current_streak >= 30:
		earned.append(BadgeType.MONTH_STREAK)
	db.add(progress)
	return _stage_badges(db, progress.user_id, earned)


def stage_quiz_result(
	db: Session, progress: UserProgress, explanation_id: str, score: int, total: int
) -> Tuple[int, List[BadgeType]]:
	"""Record a quiz attempt and return (stars awarded, badges earned).

	Stars are capped per explanation at the best score seen, so a retake only
	pays out the improvement.
	"""
	attempt = (
		db.query(QuizAttempt)
		.filter(QuizAttempt.user_id == progress.user_id, QuizAttempt.explanation_id == explanation_id)
		.first()
	)
	if attempt is None:
		attempt = QuizAttempt(user_id=progress.user_id, explanation_id=explanation_id, best_score=0, attempts=0)
	stars = max(score - (attempt.best_score or 0), 0)
	attempt.attempts = (attempt.attempts or 0) + 1
	attempt.best_score = max(attempt.best_score or 0, score)
	db.add(attempt)
	progress.total_stars = (progress.total_stars or 0) + stars
	db.add(progress)
	if total > 0 and score == total:
		return stars, _stage_badges(db, progress.user_id, [BadgeType.PERFECT_QUIZ])
	return stars, []


def stage_follow_up_badges(db: Session, user_id: str) -> List[BadgeType]:
	"""Expects the new follow-up to be flushed already."""
	count = db.query(func.count(FollowUp.id)).filter(FollowUp.user_id == user_id).scalar() or 0
	if count >= CURIOUS_LEARNER_FOLLOW_UPS:
		return _stage_badges(db, user_id, [BadgeType.CURIOUS_LEARNER])
	return []


def stage_scan_badges(db: Session, user_id: str) -> List[BadgeType]:
	"""Expects the new scan to be flushed already."""
	count = db.query(func.count(Scan.id)).filter(Scan.user_id == user_id).scalar() or 0
	if count >= SCAN_MASTER_SCANS:
		return _stage_badges(db, user_id, [BadgeType.SCAN_MASTER])
	return []
