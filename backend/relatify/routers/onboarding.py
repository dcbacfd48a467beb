from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..catalog import POPULAR_INTERESTS
from ..errors import OnboardingError
from ..preferences import normalize_interests, validate_learning_style
from ..session_gate import GateState, SessionGate, get_session_gate
from .auth import User

router = APIRouter(tags=["onboarding"])


class SessionStateResponse(BaseModel):
	state: GateState
	user: Optional[User] = None


class CompleteOnboardingRequest(BaseModel):
	interests: List[str] = []
	learning_style: Optional[str] = None


@router.get("/session", response_model=SessionStateResponse)
async def session_state(gate: SessionGate = Depends(get_session_gate)):
	return SessionStateResponse(state=gate.state, user=gate.user)


@router.get("/onboarding/interests")
async def onboarding_interests():
	return {"popular": POPULAR_INTERESTS, "max": 3}


@router.post("/onboarding/complete", response_model=SessionStateResponse)
async def complete_onboarding(req: CompleteOnboardingRequest, gate: SessionGate = Depends(get_session_gate)):
	if gate.state is GateState.UNAUTHENTICATED:
		raise HTTPException(status_code=401, detail="Could not validate credentials", headers={"WWW-Authenticate": "Bearer"})
	if gate.state is GateState.READY:
		raise OnboardingError("Onboarding already completed")
	interests = normalize_interests(req.interests)
	style = validate_learning_style(req.learning_style)
	gate.complete(interests, style)
	return SessionStateResponse(state=gate.state, user=gate.user)
