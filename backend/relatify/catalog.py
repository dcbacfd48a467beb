"""Closed vocabularies: badges, explanation sections, learning styles.

Lookups by label or id reject anything outside the set instead of falling
back to a default.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List

from .schemas import ExplanationData


class UnknownBadge(ValueError):
	pass


class UnknownSection(ValueError):
	pass


class BadgeType(Enum):
	FIRST_EXPLANATION = ("First Explanation", "book-open", "text-blue-500")
	WEEK_STREAK = ("7-Day Streak", "flame", "text-orange-500")
	MONTH_STREAK = ("30-Day Streak", "flame", "text-red-500")
	TEN_EXPLANATIONS = ("10 Topics Mastered", "target", "text-green-500")
	FIFTY_EXPLANATIONS = ("50 Topics Mastered", "trophy", "text-purple-500")
	PERFECT_QUIZ = ("Quiz Master", "award", "text-amber-500")
	CURIOUS_LEARNER = ("Curious Learner", "zap", "text-pink-500")
	SCAN_MASTER = ("Scan Master", "star", "text-indigo-500")

	def __init__(self, label: str, icon: str, color: str) -> None:
		self.label = label
		self.icon = icon
		self.color = color

	@classmethod
	def from_label(cls, label: str) -> "BadgeType":
		for badge in cls:
			if badge.label == label:
				return badge
		raise UnknownBadge(f"Unknown badge type: {label!r}")


class SectionKind(str, Enum):
	TEXT = "text"
	LIST = "list"
	NUMBERED = "numbered"
	QUIZ = "quiz"


class ExplanationSection(Enum):
	SIMPLE = ("simple", "Simple Explanation", "simple", SectionKind.TEXT)
	ANALOGY = ("analogy", "Personalized Analogy", "analogy", SectionKind.TEXT)
	STEPS = ("steps", "Step-by-Step", "step_by_step", SectionKind.NUMBERED)
	VISUAL = ("visual", "Visual Mental Model", "visual_model", SectionKind.TEXT)
	DEEPER = ("deeper", "Deeper Dive", "deeper_dive", SectionKind.TEXT)
	REAL_WORLD = ("realworld", "Real-World Applications", "real_world", SectionKind.LIST)
	PRACTICE = ("practice", "Practice Questions", "practice_questions", SectionKind.LIST)
	QUIZ = ("quiz", "Mini Quiz", "quiz", SectionKind.QUIZ)

	def __init__(self, section_id: str, title: str, field: str, kind: SectionKind) -> None:
		self.section_id = section_id
		self.title = title
		self.field = field
		self.kind = kind

	@classmethod
	def from_id(cls, section_id: str) -> "ExplanationSection":
		for section in cls:
			if section.section_id == section_id:
				return section
		raise UnknownSection(f"Unknown section: {section_id!r}")

	def render(self, data: ExplanationData) -> Dict[str, object]:
		return {
			"id": self.section_id,
			"title": self.title,
			"kind": self.kind.value,
			"content": self._content(data),
		}

	def _content(self, data: ExplanationData) -> object:
		value = getattr(data, self.field)
		if self.kind is SectionKind.QUIZ:
			# Answers stay server-side until the quiz is submitted
			return [{"question": item.question, "options": list(item.options)} for item in value]
		return value


def render_sections(data: ExplanationData) -> List[Dict[str, object]]:
	return [section.render(data) for section in ExplanationSection]


class LearningStyleOption(str, Enum):
	STORY = "story"
	VISUAL = "visual"
	STEP_BY_STEP = "step-by-step"
	HUMOR = "humor"
	REAL_WORLD = "real-world"


POPULAR_INTERESTS: List[str] = [
	"Football",
	"Basketball",
	"Gaming",
	"Anime",
	"Cooking",
	"Music",
	"Art",
	"Movies",
	"Science",
	"Technology",
	"Fashion",
	"Travel",
	"Photography",
	"Reading",
	"Fitness",
]

SUGGESTED_FOLLOW_UPS: List[str] = [
	"How does this connect to real life?",
	"Explain this with another example",
	"What should I learn next?",
]
