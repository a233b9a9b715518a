# src/padel_api/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from padel_api.core.config import settings, logger
from padel_api.core.errors import DuplicateUserError, ErrorKind, StoreError, UserServiceError
from padel_api import db
from padel_api.api.v1 import api_router
from padel_api.services.user_rules import duplicate_message

# --- Startup / shutdown ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    await db.init_db_connections()
    yield
    await db.close_db_connections()

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Error responses ---

def error_response(kind: ErrorKind, message: str, headers: dict | None = None) -> JSONResponse:
    status_code = 400 if settings.UNIFORM_ERROR_STATUS else kind.status_code
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)

@app.exception_handler(UserServiceError)
async def user_service_error_handler(request: Request, exc: UserServiceError):
    return error_response(exc.kind, exc.message, exc.headers)

@app.exception_handler(DuplicateUserError)
async def duplicate_user_error_handler(request: Request, exc: DuplicateUserError):
    return error_response(ErrorKind.DUPLICATE, duplicate_message(exc.fields))

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"--- [STORE-ERROR] {exc} ---")
    return error_response(ErrorKind.STORE, f"Store error in {exc.operation}: {exc.detail}")

@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request."
    return error_response(ErrorKind.VALIDATION, message)

# --- Routers ---
app.include_router(api_router, prefix="/api/v1")

@app.get("/api/v1/health-check")
async def health_check():
    """Checks the status of the MongoDB connection."""
    mongo_status = "error"
    try:
        if db.mongo_client:
            await db.mongo_client.server_info()
            mongo_status = "ok"
    except Exception as e:
        logger.warning(f"Health check: MongoDB unreachable: {e}")

    return {
        "server_status": "ok",
        "mongo_connection": mongo_status,
    }
