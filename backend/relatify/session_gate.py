"""Onboarding / session gate.

A gate starts in ``checking`` and resolves to one of three states. The only
signal for a finished onboarding is the user's progress row.
"""
from __future__ import annotations
import logging
from enum import Enum
from typing import List, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import get_db
from .errors import InvalidRequest, OnboardingError
from .models import UserProgress
from .preferences import preference_cache, stage_interests, stage_learning_style
from .routers.auth import User, get_optional_user

logger = logging.getLogger(__name__)


class GateState(str, Enum):
	CHECKING = "checking"
	UNAUTHENTICATED = "unauthenticated"
	NEEDS_ONBOARDING = "needs-onboarding"
	READY = "ready"


def has_completed_onboarding(db: Session, user_id: str) -> bool:
	return db.query(UserProgress.id).filter(UserProgress.user_id == user_id).first() is not None


class SessionGate:
	def __init__(self, db: Session, user: Optional[User]) -> None:
		self.db = db
		self.user = user
		self.state = GateState.CHECKING

	def resolve(self) -> GateState:
		if self.user is None:
			self.state = GateState.UNAUTHENTICATED
		elif self.state is GateState.READY or has_completed_onboarding(self.db, self.user.id):
			self.state = GateState.READY
		else:
			self.state = GateState.NEEDS_ONBOARDING
		return self.state

	def complete(self, interests: List[str], learning_style: Optional[str] = None) -> GateState:
		"""Persist the onboarding choices and the progress row in one transaction."""
		if self.state is GateState.CHECKING:
			self.resolve()
		if self.state is GateState.UNAUTHENTICATED:
			raise InvalidRequest("Sign in before onboarding")
		if self.state is GateState.READY:
			raise OnboardingError("Onboarding already completed")
		user_id = self.user.id
		try:
			stage_interests(self.db, user_id, interests)
			stage_learning_style(self.db, user_id, learning_style)
			self.db.add(UserProgress(
				user_id=user_id,
				total_explanations=0,
				current_streak=0,
				longest_streak=0,
				total_stars=0,
			))
			self.db.commit()
		except IntegrityError as err:
			self.db.rollback()
			# Another request finished onboarding after this gate resolved
			self.state = GateState.CHECKING
			if self.resolve() is GateState.READY:
				logger.info("User %s finished onboarding concurrently", user_id)
				raise OnboardingError("Onboarding already completed") from err
			logger.exception("Onboarding failed for user %s", user_id)
			raise
		except Exception:
			self.db.rollback()
			logger.exception("Onboarding failed for user %s", user_id)
			self.state = GateState.NEEDS_ONBOARDING
			raise
		preference_cache.invalidate(user_id)
		self.state = GateState.READY
		logger.info("User %s completed onboarding with interests %s", user_id, interests)
		return self.state


def get_session_gate(user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)) -> SessionGate:
	gate = SessionGate(db, user)
	gate.resolve()
	return gate


def require_ready_user(gate: SessionGate = Depends(get_session_gate)) -> User:
	if gate.state is GateState.UNAUTHENTICATED:
		raise HTTPException(
			status_code=401,
			detail="Could not validate credentials",
			headers={"WWW-Authenticate": "Bearer"},
		)
	if gate.state is GateState.NEEDS_ONBOARDING:
		raise HTTPException(status_code=403, detail="Onboarding required")
	return gate.user
