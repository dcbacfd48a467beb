from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .catalog import LearningStyleOption
from .errors import InvalidRequest
from .models import LearningStyle, UserInterest

logger = logging.getLogger(__name__)

MAX_INTERESTS = 3


@dataclass(frozen=True)
class Preferences:
	interests: List[str] = field(default_factory=list)
	learning_style: Optional[str] = None


class PreferenceCache:
	"""Read-through cache of per-user preferences.

	The database stays authoritative: a miss always reloads from it and every
	successful write must call ``invalidate`` for the user it touched.
	"""

	def __init__(self) -> None:
		self._entries: Dict[str, Preferences] = {}
		self._lock = threading.Lock()

	def get(self, db: Session, user_id: str) -> Preferences:
		with self._lock:
			cached = self._entries.get(user_id)
		if cached is not None:
			return cached
		prefs = load_preferences(db, user_id)
		with self._lock:
			self._entries[user_id] = prefs
		return prefs

	def invalidate(self, user_id: str) -> None:
		with self._lock:
			self._entries.pop(user_id, None)

	def clear(self) -> None:
		with self._lock:
			self._entries.clear()


preference_cache = PreferenceCache()


def load_preferences(db: Session, user_id: str) -> Preferences:
	rows = (
		db.query(UserInterest)
		.filter(UserInterest.user_id == user_id)
		.order_by(UserInterest.position)
		.all()
	)
	style = db.query(LearningStyle).filter(LearningStyle.user_id == user_id).first()
	return Preferences(
		interests=[r.interest for r in rows],
		learning_style=style.style if style else None,
	)


def normalize_interests(raw: Optional[Iterable[str]], *, minimum: int = 1) -> List[str]:
	"""Trim, drop blanks and case-insensitive duplicates; enforce the 1-3 bound."""
	seen = set()
	result: List[str] = []
	for item in raw or []:
		label = str(item).strip()
		if not label or label.lower() in seen:
			continue
		seen.add(label.lower())
		result.append(label)
	if len(result) > MAX_INTERESTS:
		raise InvalidRequest(f"At most {MAX_INTERESTS} interests are allowed")
	if len(result) < minimum:
		raise InvalidRequest("Pick at least one interest")
	return result


def validate_learning_style(style: Optional[str]) -> Optional[str]:
	if style is None or style == "":
		return None
	try:
		return LearningStyleOption(style).value
	except ValueError:
		allowed = ", ".join(o.value for o in LearningStyleOption)
		raise InvalidRequest(f"learning style must be one of: {allowed}") from None


def stage_interests(db: Session, user_id: str, interests: List[str]) -> None:
	"""Queue a wholesale replacement of the user's interests; the caller commits."""
	db.execute(delete(UserInterest).where(UserInterest.user_id == user_id))
	db.add_all([UserInterest(user_id=user_id, interest=i, position=n) for n, i in enumerate(interests)])


def stage_learning_style(db: Session, user_id: str, style: Optional[str]) -> None:
	db.execute(delete(LearningStyle).where(LearningStyle.user_id == user_id))
	if style:
		db.add(LearningStyle(user_id=user_id, style=style))


def replace_interests(db: Session, user_id: str, interests: List[str]) -> List[str]:
	try:
		stage_interests(db, user_id, interests)
		db.commit()
	except Exception:
		db.rollback()
		raise
	preference_cache.invalidate(user_id)
	logger.info("Interests replaced for user %s: %s", user_id, interests)
	return interests


def set_learning_style(db: Session, user_id: str, style: Optional[str]) -> Optional[str]:
	try:
		stage_learning_style(db, user_id, style)
		db.commit()
	except Exception:
		db.rollback()
		raise
	preference_cache.invalidate(user_id)
	return style
