from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import AuthUser, AuthSession
from ..preferences import preference_cache

router = APIRouter(prefix="/auth", tags=["auth"])

logging.getLogger('passlib').setLevel(logging.ERROR)
logger = logging.getLogger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error=False so the session gate can report "unauthenticated" itself
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class User(BaseModel):
	id: str
	email: str
	username: str


def _to_user(row: AuthUser) -> User:
	return User(id=row.id, email=row.email, username=row.username)


def _bcrypt_safe(password: str) -> str:
	# bcrypt only looks at the first 72 bytes
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)


def authenticate_user(db: Session, email: str, password: str) -> Optional[AuthUser]:
	row = db.query(AuthUser).filter(AuthUser.email == email.strip().lower()).first()
	if row and verify_password(password, row.password_hash):
		return row
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=30)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	to_encode.update({"exp": _resolve_expiry(expires_delta)})
	return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_token(db: Session, user: AuthUser) -> Token:
	session_id = uuid.uuid4().hex
	access_token = create_access_token({"sub": user.id, "jti": session_id})
	try:
		db.add(AuthSession(session_id=session_id, user_id=user.id))
		db.commit()
	except Exception:
		db.rollback()
		raise
	return Token(access_token=access_token)


def _decode(token: str) -> tuple[str, str]:
	payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	user_id: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if user_id is None or jti is None:
		raise JWTError("token is missing sub or jti")
	return user_id, jti


def get_optional_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Optional[User]:
	"""Resolve the bearer token to a user, or None when there is no valid session."""
	if not token:
		return None
	try:
		user_id, jti = _decode(token)
	except JWTError:
		return None
	row = db.get(AuthSession, jti)
	if not row or row.user_id != user_id:
		return None
	user_row = db.get(AuthUser, user_id)
	if user_row is None:
		return None
	row.last_activity_at = datetime.utcnow()
	db.add(row)
	db.commit()
	return _to_user(user_row)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
	if user is None:
		raise HTTPException(
			status_code=401,
			detail="Could not validate credentials",
			headers={"WWW-Authenticate": "Bearer"},
		)
	return user


class RegisterRequest(BaseModel):
	email: str
	password: str
	username: Optional[str] = None


@router.post("/register", status_code=201, response_model=Token)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	email = (req.email or "").strip().lower()
	password = req.password or ""
	if not email or "@" not in email:
		raise HTTPException(status_code=400, detail="a valid email is required")
	if len(password) < 6:
		raise HTTPException(status_code=400, detail="password must be at least 6 characters")
	username = (req.username or "").strip() or email.split("@")[0]
	if len(username) > 128:
		raise HTTPException(status_code=400, detail="username must be at most 128 characters")
	existing = db.query(AuthUser).filter(AuthUser.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="email already registered")
	row = AuthUser(email=email, username=username, password_hash=hash_password(password))
	db.add(row)
	db.commit()
	logger.info("Registered user %s", row.id)
	return issue_token(db, row)


@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	# The form's "username" field carries the email address
	user = authenticate_user(db, form_data.username, form_data.password)
	if not user:
		raise HTTPException(status_code=401, detail="Incorrect email or password")
	return issue_token(db, user)


@router.get("/me", response_model=User)
async def me(user: User = Depends(get_current_user)):
	return user


class UpdateMeRequest(BaseModel):
	username: str


@router.patch("/me", response_model=User)
async def update_me(req: UpdateMeRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	username = (req.username or "").strip()
	if not username or len(username) > 128:
		raise HTTPException(status_code=400, detail="username must be 1-128 characters")
	row = db.get(AuthUser, user.id)
	row.username = username
	db.add(row)
	db.commit()
	preference_cache.invalidate(user.id)
	return _to_user(row)


@router.post("/logout", status_code=204)
async def logout(token: Optional[str] = Depends(oauth2_scheme), user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	_, jti = _decode(token)
	row = db.get(AuthSession, jti)
	if row is not None:
		db.delete(row)
		db.commit()
