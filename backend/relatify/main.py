import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .catalog import UnknownBadge
from .db import Base, engine
from .errors import RelatifyError
from .settings import settings
from .routers import auth
from .routers import functions
from .routers import onboarding
from .routers import profile
from .routers import explanations
from .routers import progress
from .routers import scans

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("relatify")

app = FastAPI(title="Relatify API")

# Permissive preflight for browser clients, same as the hosted functions
app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_methods=["*"],
	allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(functions.router)
app.include_router(onboarding.router)
app.include_router(profile.router)
app.include_router(explanations.router)
app.include_router(progress.router)
app.include_router(scans.router)


@app.exception_handler(RelatifyError)
async def relatify_error_handler(request: Request, exc: RelatifyError):
	return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
	logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
	return JSONResponse(status_code=500, content={"error": str(exc.orig) if getattr(exc, "orig", None) else str(exc)})


FUNCTIONS_PREFIX = functions.router.prefix


def _is_function_call(request: Request) -> bool:
	return request.url.path.startswith(FUNCTIONS_PREFIX + "/")


@app.exception_handler(StarletteHTTPException)
async def function_http_error_handler(request: Request, exc: StarletteHTTPException):
	# The raw functions answer every failure as {"error": ...}
	if not _is_function_call(request):
		return await http_exception_handler(request, exc)
	return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def function_validation_error_handler(request: Request, exc: RequestValidationError):
	if not _is_function_call(request):
		return await request_validation_exception_handler(request, exc)
	problems = [
		f"{'.'.join(str(p) for p in err['loc'] if p != 'body')}: {err['msg']}"
		for err in exc.errors()
	]
	return JSONResponse(status_code=400, content={"error": "Invalid request: " + "; ".join(problems)})


@app.exception_handler(UnknownBadge)
async def unknown_badge_handler(request: Request, exc: UnknownBadge):
	logger.error("%s", exc)
	return JSONResponse(status_code=500, content={"error": str(exc)})


@app.get("/info")
def root():
	return {"status": "ok", "ai_configured": bool(settings.ai_api_key)}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
