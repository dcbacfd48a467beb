from __future__ import annotations
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..catalog import SUGGESTED_FOLLOW_UPS, ExplanationSection, UnknownSection, render_sections
from ..completion_client import CompletionClient, get_completion_client
from ..db import get_db
from ..errors import InvalidRequest
from ..generation import answer_followup, generate_explanation
from ..models import Explanation, FollowUp
from ..preferences import preference_cache
from ..progress import (
	get_progress,
	stage_explanation_progress,
	stage_follow_up_badges,
	stage_quiz_result,
)
from ..schemas import ExplanationData, ExplanationOut, FollowUpAnswer, FollowUpOut, SectionOut
from ..session_gate import require_ready_user
from .auth import User

logger = logging.getLogger(__name__)

router = APIRouter(tags=["explanations"])


class TopicRequest(BaseModel):
	topic: Optional[str] = None


class FollowUpRequest(BaseModel):
	question: Optional[str] = None
	explanation_id: Optional[str] = None


class QuizRequest(BaseModel):
	answers: List[Optional[int]]


class QuizResult(BaseModel):
	score: int
	total: int
	correct: List[bool]
	correct_answers: List[int]
	stars_awarded: int
	badges_earned: List[str] = []


def _explanation_data(row: Explanation) -> ExplanationData:
	return ExplanationData.model_validate(json.loads(row.explanation_data))


def _to_out(row: Explanation, *, with_sections: bool = True) -> ExplanationOut:
	data = _explanation_data(row)
	return ExplanationOut(
		id=row.id,
		topic=row.topic,
		explanation_data=data,
		created_at=row.created_at,
		sections=[SectionOut(**s) for s in render_sections(data)] if with_sections else [],
		suggested_follow_ups=SUGGESTED_FOLLOW_UPS if with_sections else [],
	)


def _follow_up_out(row: FollowUp) -> FollowUpOut:
	return FollowUpOut(
		id=row.id,
		explanation_id=row.explanation_id,
		question=row.question,
		answer=FollowUpAnswer.model_validate(json.loads(row.answer)),
		created_at=row.created_at,
	)


def _owned_explanation(db: Session, user: User, explanation_id: str) -> Explanation:
	row = db.query(Explanation).filter(Explanation.id == explanation_id, Explanation.user_id == user.id).first()
	if row is None:
		raise HTTPException(status_code=404, detail="explanation not found")
	return row


@router.post("/explanations", response_model=ExplanationOut, status_code=201)
async def create_explanation(
	req: TopicRequest,
	user: User = Depends(require_ready_user),
	db: Session = Depends(get_db),
	client: CompletionClient = Depends(get_completion_client),
):
	prefs = preference_cache.get(db, user.id)
	# Nothing is written unless generation succeeds
	data = await generate_explanation(client, req.topic, prefs.interests, prefs.learning_style)
	topic = req.topic.strip()
	progress = get_progress(db, user.id)
	try:
		row = Explanation(
			user_id=user.id,
			topic=topic,
			explanation_data=json.dumps(data.model_dump(by_alias=True)),
		)
		db.add(row)
		stage_explanation_progress(db, progress)
		db.commit()
	except Exception:
		db.rollback()
		raise
	db.refresh(row)
	logger.info("Explanation %s generated for user %s on %r", row.id, user.id, topic)
	return _to_out(row)


@router.get("/explanations", response_model=List[ExplanationOut])
async def recent_explanations(
	limit: int = Query(default=5, ge=1, le=50),
	user: User = Depends(require_ready_user),
	db: Session = Depends(get_db),
):
	rows = (
		db.query(Explanation)
		.filter(Explanation.user_id == user.id)
		.order_by(Explanation.created_at.desc())
		.limit(limit)
		.all()
	)
	return [_to_out(r, with_sections=False) for r in rows]


@router.get("/explanations/{explanation_id}", response_model=ExplanationOut)
async def get_explanation(explanation_id: str, user: User = Depends(require_ready_user), db: Session = Depends(get_db)):
	return _to_out(_owned_explanation(db, user, explanation_id))


@router.get("/explanations/{explanation_id}/sections/{section_id}", response_model=SectionOut)
async def get_section(
	explanation_id: str,
	section_id: str,
	user: User = Depends(require_ready_user),
	db: Session = Depends(get_db),
):
	row = _owned_explanation(db, user, explanation_id)
	try:
		section = ExplanationSection.from_id(section_id)
	except UnknownSection as err:
		raise HTTPException(status_code=404, detail=str(err))
	return SectionOut(**section.render(_explanation_data(row)))


@router.post("/explanations/{explanation_id}/quiz", response_model=QuizResult)
async def submit_quiz(
	explanation_id: str,
	req: QuizRequest,
	user: User = Depends(require_ready_user),
	db: Session = Depends(get_db),
):
	data = _explanation_data(_owned_explanation(db, user, explanation_id))
	if len(req.answers) != len(data.quiz):
		raise InvalidRequest(f"Expected {len(data.quiz)} answers")
	correct = [a == item.correct_answer for a, item in zip(req.answers, data.quiz)]
	score = sum(correct)
	progress = get_progress(db, user.id)
	try:
		stars, earned = stage_quiz_result(db, progress, explanation_id, score, len(data.quiz))
		db.commit()
	except Exception:
		db.rollback()
		raise
	return QuizResult(
		score=score,
		total=len(data.quiz),
		correct=correct,
		correct_answers=[item.correct_answer for item in data.quiz],
		stars_awarded=stars,
		badges_earned=[b.label for b in earned],
	)


@router.post("/follow-ups", response_model=FollowUpOut, status_code=201)
async def create_follow_up(
	req: FollowUpRequest,
	user: User = Depends(require_ready_user),
	db: Session = Depends(get_db),
	client: CompletionClient = Depends(get_completion_client),
):
	context = ""
	explanation_id = None
	if req.explanation_id:
		explanation = _owned_explanation(db, user, req.explanation_id)
		context = explanation.topic
		explanation_id = explanation.id
	prefs = preference_cache.get(db, user.id)
	answer = await answer_followup(client, req.question, context, prefs.interests)
	try:
		row = FollowUp(
			user_id=user.id,
			explanation_id=explanation_id,
			question=req.question.strip(),
			answer=json.dumps(answer.model_dump()),
		)
		db.add(row)
		db.flush()
		stage_follow_up_badges(db, user.id)
		db.commit()
	except Exception:
		db.rollback()
		raise
	db.refresh(row)
	return _follow_up_out(row)


@router.get("/explanations/{explanation_id}/follow-ups", response_model=List[FollowUpOut])
async def list_follow_ups(explanation_id: str, user: User = Depends(require_ready_user), db: Session = Depends(get_db)):
	_owned_explanation(db, user, explanation_id)
	rows = (
		db.query(FollowUp)
		.filter(FollowUp.user_id == user.id, FollowUp.explanation_id == explanation_id)
		.order_by(FollowUp.created_at.desc())
		.all()
	)
	return [_follow_up_out(r) for r in rows]
