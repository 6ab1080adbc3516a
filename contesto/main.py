import os
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from dotenv import load_dotenv

from contesto.database import Database
from contesto.services.auth.firebase_auth import firebase_auth_service
from contesto.services.payment.gateways.factory import PaymentGatewayFactory
from contesto.routes.user.user_routes import router as user_router
from contesto.routes.user.creator_routes import router as creator_router
from contesto.routes.contest.contest_routes import (
    router as contest_router,
    creator_router as creator_contest_router,
    admin_router as admin_contest_router
)
from contesto.routes.contest.submission_routes import (
    router as submission_router,
    creator_router as creator_submission_router,
    leaderboard_router
)
from contesto.routes.contest.participant_routes import router as participant_router
from contesto.routes.payment.payment_routes import router as payment_router
from contesto.utils.response import error_response, validation_error_response

# Load environment variables
load_dotenv()

# Get environment variables
APP_NAME = os.getenv("APP_NAME", "Contesto")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for the application"""
    # Startup
    await Database.connect_db()

    try:
        PaymentGatewayFactory.get_gateway()
        print("[OK] Payment gateway ready")
    except ValueError as e:
        print(f"[WARN] Payment gateway unavailable: {e}")

    yield

    # Shutdown
    await PaymentGatewayFactory.close_all()
    firebase_auth_service.close()
    await Database.close_db()


app = FastAPI(
    title=APP_NAME,
    version=APP_VERSION,
    description="Contesto API: contests, creators, paid participation, submissions and winners",
    lifespan=lifespan
)

# CORS middleware
# In development, allow all origins for easier testing
DEBUG = os.getenv("DEBUG", "True").lower() == "true"

cors_origins = [
    FRONTEND_URL,
    "http://localhost:5173",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins if not DEBUG else ["*"],
    allow_credentials=not DEBUG,  # Can't use credentials with wildcard origin
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render guard failures and unknown routes in the standard envelope"""
    return error_response(message=str(exc.detail), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render body/query validation failures with per-field messages"""
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", []) if part not in ("body", "query", "path"))
        errors[field or "request"] = error.get("msg")
    return validation_error_response(errors=errors)


app.include_router(user_router)
app.include_router(creator_router)
app.include_router(contest_router)
app.include_router(creator_contest_router)
app.include_router(admin_contest_router)
app.include_router(submission_router)
app.include_router(creator_submission_router)
app.include_router(leaderboard_router)
app.include_router(participant_router)
app.include_router(payment_router)


@app.get("/")
async def read_root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {APP_NAME} API",
        "version": APP_VERSION,
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "3000"))
    print(f"[OK] {APP_NAME} listening on port {port}")
    uvicorn.run("contesto.main:app", host="0.0.0.0", port=port)
