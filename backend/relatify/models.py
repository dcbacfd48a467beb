from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, Date, String, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(32), primary_key=True, default=_new_id)
	email = Column(String(256), unique=True, index=True, nullable=False)
	# Display name, the only field the owner may edit
	username = Column(String(128), nullable=False)
	password_hash = Column(String(256), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT "jti"; a token is valid only while its row exists
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserInterest(Base):
	__tablename__ = "user_interests"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	interest = Column(String(128), nullable=False)
	position = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LearningStyle(Base):
	__tablename__ = "learning_styles"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), unique=True, nullable=False)
	style = Column(String(32), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class UserProgress(Base):
	__tablename__ = "user_progress"
	id = Column(String(32), primary_key=True, default=_new_id)
	# One row per user; its existence marks onboarding as complete
	user_id = Column(String(32), ForeignKey("auth_users.id"), unique=True, nullable=False)
	total_explanations = Column(Integer, default=0, nullable=False)
	current_streak = Column(Integer, default=0, nullable=False)
	longest_streak = Column(Integer, default=0, nullable=False)
	total_stars = Column(Integer, default=0, nullable=False)
	last_activity_date = Column(Date, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Explanation(Base):
	__tablename__ = "explanations"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	topic = Column(Text, nullable=False)
	explanation_data = Column(Text, nullable=False)  # JSON string of the explanation record
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class FollowUp(Base):
	__tablename__ = "follow_ups"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	explanation_id = Column(String(32), ForeignKey("explanations.id"), index=True, nullable=True)
	question = Column(Text, nullable=False)
	answer = Column(Text, nullable=False)  # JSON string: {"content": ...}
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Badge(Base):
	__tablename__ = "badges"
	__table_args__ = (UniqueConstraint("user_id", "badge_type", name="uq_badges_user_type"),)
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	badge_type = Column(String(64), nullable=False)
	earned_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Scan(Base):
	__tablename__ = "scans"
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	image_name = Column(String(256), nullable=True)
	extracted_text = Column(Text, nullable=True)
	processed = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class QuizAttempt(Base):
	__tablename__ = "quiz_results"
	__table_args__ = (UniqueConstraint("user_id", "explanation_id", name="uq_quiz_results_user_explanation"),)
	id = Column(String(32), primary_key=True, default=_new_id)
	user_id = Column(String(32), ForeignKey("auth_users.id"), index=True, nullable=False)
	explanation_id = Column(String(32), ForeignKey("explanations.id"), nullable=False)
	# Stars already paid out for this explanation
	best_score = Column(Integer, default=0, nullable=False)
	attempts = Column(Integer, default=0, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
