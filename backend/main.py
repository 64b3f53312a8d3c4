import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.auth_api import router as auth_router
from app.api.fact_check_api import router as fact_check_router
from app.api.revenuecat_api import router as revenuecat_router
from app.api.settings_api import router as settings_router
from app.api.suggestions_api import router as suggestions_router
from app.api.users_api import router as users_router
from app.core.config import FRONTEND_URL, LOG_LEVEL
from app.core.database import check_connection
from app.core.dependencies import get_fact_check_repository, get_user_repository
from app.core.exceptions import VeritasException

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Veritas Fact-Check API")

# Configure CORS - Allow both local development and the configured frontend
allowed_origins = [
    FRONTEND_URL,
    "http://localhost:3000",
    "http://localhost:8081",  # Expo dev server
]

# Remove duplicates and None values
allowed_origins = list(filter(None, set(allowed_origins)))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VeritasException)
async def veritas_exception_handler(request: Request, exc: VeritasException):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "INVALID_INPUT", "message": "Invalid request", "details": {"errors": errors}},
    )


@app.on_event("startup")
async def startup_event():
    if check_connection():
        get_user_repository().ensure_indexes()
        get_fact_check_repository().ensure_indexes()


app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
app.include_router(fact_check_router, prefix="/api/fact-checks", tags=["Fact Checking"])
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(settings_router, prefix="/api/settings", tags=["Settings"])
app.include_router(suggestions_router, prefix="/api/suggestions", tags=["Suggestions"])
app.include_router(revenuecat_router, prefix="/api/revenuecat", tags=["Subscriptions"])


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/")
async def root():
    return {"message": "Veritas API is running. Use the /api/fact-checks endpoints."}
