from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..catalog import POPULAR_INTERESTS, LearningStyleOption
from ..db import get_db
from ..preferences import (
	normalize_interests,
	preference_cache,
	replace_interests,
	set_learning_style,
	validate_learning_style,
)
from ..session_gate import require_ready_user
from .auth import User

router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileResponse(BaseModel):
	user: User
	interests: List[str]
	learning_style: Optional[str] = None


class InterestsRequest(BaseModel):
	interests: List[str] = []


class LearningStyleRequest(BaseModel):
	style: Optional[str] = None


@router.get("", response_model=ProfileResponse)
async def get_profile(user: User = Depends(require_ready_user), db: Session = Depends(get_db)):
	prefs = preference_cache.get(db, user.id)
	return ProfileResponse(user=user, interests=prefs.interests, learning_style=prefs.learning_style)


@router.get("/interests/popular")
async def popular_interests():
	return {"popular": POPULAR_INTERESTS}


@router.get("/learning-styles")
async def learning_styles():
	return {"styles": [o.value for o in LearningStyleOption]}


@router.put("/interests")
async def update_interests(req: InterestsRequest, user: User = Depends(require_ready_user), db: Session = Depends(get_db)):
	interests = normalize_interests(req.interests)
	return {"interests": replace_interests(db, user.id, interests)}


@router.put("/learning-style")
async def update_learning_style(req: LearningStyleRequest, user: User = Depends(require_ready_user), db: Session = Depends(get_db)):
	style = validate_learning_style(req.style)
	return {"learning_style": set_learning_style(db, user.id, style)}
