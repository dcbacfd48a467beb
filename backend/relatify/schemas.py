from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class QuizItem(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	question: str
	options: List[str] = Field(min_length=4, max_length=4)
	correct_answer: int = Field(alias="correctAnswer", ge=0, le=3)


class ExplanationData(BaseModel):
	"""The eight-section explanation record, camelCase on the wire."""
	model_config = ConfigDict(populate_by_name=True)

	simple: str
	analogy: str
	step_by_step: List[str] = Field(alias="stepByStep", min_length=4, max_length=5)
	visual_model: str = Field(alias="visualModel")
	deeper_dive: str = Field(alias="deeperDive")
	real_world: List[str] = Field(alias="realWorld", min_length=3, max_length=4)
	practice_questions: List[str] = Field(alias="practiceQuestions", min_length=3, max_length=3)
	quiz: List[QuizItem] = Field(min_length=3, max_length=3)


class FollowUpAnswer(BaseModel):
	content: str


class SectionOut(BaseModel):
	id: str
	title: str
	kind: str
	content: str | List[str] | List[Dict[str, Any]]


class ExplanationOut(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	id: str
	topic: str
	explanation_data: ExplanationData
	created_at: datetime
	sections: List[SectionOut] = []
	suggested_follow_ups: List[str] = []


class FollowUpOut(BaseModel):
	id: str
	explanation_id: Optional[str] = None
	question: str
	answer: FollowUpAnswer
	created_at: datetime


class BadgeOut(BaseModel):
	badge_type: str
	label: str
	icon: str
	color: str
	earned_at: datetime


class RecentActivity(BaseModel):
	id: str
	topic: str
	created_at: datetime


class ProgressOut(BaseModel):
	total_explanations: int
	current_streak: int
	longest_streak: int
	total_stars: int
	last_activity_date: Optional[date] = None
	badges: List[BadgeOut] = []
	recent_activity: List[RecentActivity] = []
