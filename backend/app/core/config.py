import os
import secrets
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# MongoDB
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017/veritas_db")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "veritas_db")

# Google Gemini API Configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_TIMEOUT_SECONDS = int(os.getenv("GEMINI_TIMEOUT_SECONDS", "60"))
RESPONSE_LANGUAGE = os.getenv("RESPONSE_LANGUAGE", "English")

# Verification defaults
DEFAULT_CONFIDENCE_SCORE = int(os.getenv("DEFAULT_CONFIDENCE_SCORE", "85"))
MAX_SOURCES = int(os.getenv("MAX_SOURCES", "10"))
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))
IMAGE_FETCH_TIMEOUT_SECONDS = int(os.getenv("IMAGE_FETCH_TIMEOUT_SECONDS", "15"))

# Quota defaults, written to the settings document on first read (0 = unlimited)
DEFAULT_FREE_DAILY_LIMIT = int(os.getenv("DEFAULT_FREE_DAILY_LIMIT", "10"))
DEFAULT_PREMIUM_DAILY_LIMIT = int(os.getenv("DEFAULT_PREMIUM_DAILY_LIMIT", "0"))

# Accounts allowed to change global limits
ADMIN_EMAILS = [
    email.strip().lower()
    for email in os.getenv("ADMIN_EMAILS", "").split(",")
    if email.strip()
]

# Server Configuration
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "8000"))
BACKEND_HOST = os.getenv("BACKEND_HOST", "0.0.0.0")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# JWT Authentication Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "30"))

# RevenueCat subscription webhook; the endpoint refuses every call while unset
REVENUECAT_WEBHOOK_SECRET = os.getenv("REVENUECAT_WEBHOOK_SECRET")
