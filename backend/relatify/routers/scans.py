from __future__ import annotations
import logging
from io import BytesIO

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Scan
from ..progress import stage_scan_badges
from ..session_gate import require_ready_user
from .auth import User

try:
	import pytesseract  # type: ignore
	from PIL import Image  # type: ignore
except Exception:
	# Defer import errors until the OCR endpoint is actually called
	pytesseract = None  # type: ignore
	Image = None  # type: ignore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scans", tags=["scans"])

MAX_IMAGE_BYTES = 10 * 1024 * 1024


class ScanResponse(BaseModel):
	id: str
	extracted_text: str
	processed: bool
	badges_earned: list[str] = []


@router.post("", response_model=ScanResponse, status_code=201)
async def scan_image(
	file: UploadFile = File(...),
	user: User = Depends(require_ready_user),
	db: Session = Depends(get_db),
):
	if pytesseract is None or Image is None:
		raise HTTPException(
			status_code=500,
			detail="OCR dependencies not installed. Install system package 'tesseract-ocr' and Python packages 'pytesseract' and 'Pillow'",
		)
	content = await file.read()
	if not content:
		raise HTTPException(status_code=400, detail="image file is empty")
	if len(content) > MAX_IMAGE_BYTES:
		raise HTTPException(status_code=400, detail="image file is too large")
	try:
		img = Image.open(BytesIO(content))
		text = pytesseract.image_to_string(img)
	except Exception as e:
		raise HTTPException(status_code=400, detail=f"Failed to OCR image: {e}")
	text = (text or "").strip()
	try:
		row = Scan(user_id=user.id, image_name=file.filename, extracted_text=text, processed=bool(text))
		db.add(row)
		db.flush()
		earned = stage_scan_badges(db, user.id)
		db.commit()
	except Exception:
		db.rollback()
		raise
	logger.info("Scan %s processed for user %s (%d chars)", row.id, user.id, len(text))
	return ScanResponse(id=row.id, extracted_text=text, processed=row.processed, badges_earned=[b.label for b in earned])
