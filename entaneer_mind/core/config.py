import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./entaneer_mind.db")

API_PREFIX = os.getenv("API_PREFIX", "/api")
FRONTEND_ORIGINS = [
    origin.strip()
    for origin in os.getenv("FRONTEND_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]
FRONTEND_LOGIN_REDIRECT_URL = os.getenv("FRONTEND_LOGIN_REDIRECT_URL", "")

OAUTH_CLIENT_ID = os.getenv("OAUTH_CLIENT_ID", "")
OAUTH_CLIENT_SECRET = os.getenv("OAUTH_CLIENT_SECRET", "")
OAUTH_AUTHORIZE_URL = os.getenv("OAUTH_AUTHORIZE_URL", "https://oauth.cmu.ac.th/v1/Authorize.aspx")
OAUTH_TOKEN_URL = os.getenv("OAUTH_TOKEN_URL", "https://oauth.cmu.ac.th/v1/GetToken.aspx")
OAUTH_USERINFO_URL = os.getenv("OAUTH_USERINFO_URL", "https://misapi.cmu.ac.th/cmuitaccount/v1/api/cmuitaccount/basicinfo")
OAUTH_REDIRECT_URI = os.getenv("OAUTH_REDIRECT_URI", "http://localhost:3000/api/auth/callback")
OAUTH_SCOPE = os.getenv("OAUTH_SCOPE", "cmuitaccount.basicinfo")
OAUTH_TIMEOUT_SECONDS = float(os.getenv("OAUTH_TIMEOUT_SECONDS", "10"))

GOOGLE_CALENDAR_API = os.getenv("GOOGLE_CALENDAR_API", "https://www.googleapis.com/calendar/v3")
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")
CALENDAR_TIMEZONE = os.getenv("CALENDAR_TIMEZONE", "Asia/Bangkok")
SESSION_LENGTH_MINUTES = int(os.getenv("SESSION_LENGTH_MINUTES", "60"))

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))
JWT_ISSUER = os.getenv("JWT_ISSUER", "entaneer-mind")

ONBOARDING_DEBUG_SKIP = _get_bool(os.getenv("ONBOARDING_DEBUG_SKIP"), default=False)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if APP_ENV.lower() == "production" and ONBOARDING_DEBUG_SKIP:
        raise RuntimeError("ONBOARDING_DEBUG_SKIP must be disabled in production.")
