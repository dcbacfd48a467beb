from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..completion_client import CompletionClient, get_completion_client
from ..generation import answer_followup, generate_explanation
from ..schemas import ExplanationData, FollowUpAnswer
from .auth import User, get_current_user

# Stateless generation endpoints; nothing here touches the database.
router = APIRouter(prefix="/functions", tags=["functions"])


class GenerateExplanationRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	# Optional so a missing topic is reported as 400 {"error": ...} rather than 422
	topic: Optional[str] = None
	interests: List[str] = []
	learning_style: Optional[str] = Field(default=None, alias="learningStyle")


class GenerateExplanationResponse(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	explanation_data: ExplanationData = Field(alias="explanationData")


class AnswerFollowUpRequest(BaseModel):
	question: Optional[str] = None
	context: Optional[str] = ""
	interests: List[str] = []


class AnswerFollowUpResponse(BaseModel):
	answer: FollowUpAnswer


@router.post("/generate-explanation", response_model=GenerateExplanationResponse)
async def generate_explanation_endpoint(
	req: GenerateExplanationRequest,
	user: User = Depends(get_current_user),
	client: CompletionClient = Depends(get_completion_client),
):
	data = await generate_explanation(client, req.topic, req.interests, req.learning_style)
	return GenerateExplanationResponse(explanation_data=data)


@router.post("/answer-followup", response_model=AnswerFollowUpResponse)
async def answer_followup_endpoint(
	req: AnswerFollowUpRequest,
	user: User = Depends(get_current_user),
	client: CompletionClient = Depends(get_completion_client),
):
	answer = await answer_followup(client, req.question, req.context, req.interests)
	return AnswerFollowUpResponse(answer=answer)
