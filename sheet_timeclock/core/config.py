import os
from typing import List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

def parse_list_env(env_var: str, default: List[str] = None) -> List[str]:
    """Parse comma-separated environment variable into list"""
    if default is None:
        default = []
        
    value = os.getenv(env_var, "")
    if not value.strip():
        return default
        
    return [item.strip() for item in value.split(",") if item.strip()]

def parse_bool_env(env_var: str, default: bool = False) -> bool:
    """Parse boolean environment variable"""
    return os.getenv(env_var, str(default)).lower() in ("true", "1", "yes", "on")

class GoogleConfig:
    """Google identity and Drive metadata settings from Environment"""
    
    CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
    CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
    REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:3000/auth/provider/callback")
    
    # Used for metadata lookups when the caller never signed in through Google
    API_KEY = os.getenv("GOOGLE_API_KEY", "")
    
    SCOPES = parse_list_env(
        "GOOGLE_SCOPES",
        [
            "openid",
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
            "https://www.googleapis.com/auth/drive.metadata.readonly",
        ]
    )
    
    REQUEST_TIMEOUT_SECONDS = float(os.getenv("GOOGLE_REQUEST_TIMEOUT_SECONDS", "10"))
    MAX_RETRIES = int(os.getenv("GOOGLE_MAX_RETRIES", "2"))
    RETRY_BACKOFF_SECONDS = float(os.getenv("GOOGLE_RETRY_BACKOFF_SECONDS", "0.5"))

    @classmethod
    def is_configured(cls) -> bool:
        return bool(cls.CLIENT_ID and cls.CLIENT_SECRET)

class TrackingConfig:
    """Work session tracking settings"""
    
    # External modification poll while a session is active
    POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "30"))
    TICK_INTERVAL_SECONDS = float(os.getenv("TICK_INTERVAL_SECONDS", "1"))
    CURRENCY = os.getenv("SALARY_CURRENCY", "CZK")

class ServerConfig:
    """Server Configuration from Environment"""
    
    # Server settings
    HOST = os.getenv("TIMECLOCK_HOST", "0.0.0.0")
    PORT = int(os.getenv("TIMECLOCK_PORT", "3000"))
    SSL_PORT = int(os.getenv("TIMECLOCK_SSL_PORT", "3443"))
    WORKERS = int(os.getenv("TIMECLOCK_WORKERS", "1"))
    LOG_LEVEL = os.getenv("TIMECLOCK_LOG_LEVEL", "info")
    
    # SSL/HTTPS settings
    USE_HTTPS = parse_bool_env("USE_HTTPS", False)
    SSL_CERT_FILE = os.getenv("SSL_CERT_FILE", "./certs/cert.pem")
    SSL_KEY_FILE = os.getenv("SSL_KEY_FILE", "./certs/key.pem")
    
    # Login session cookie
    SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me-session-secret")
    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "timeclock_session")
    SESSION_MAX_AGE_SECONDS = int(os.getenv("SESSION_MAX_AGE_SECONDS", str(24 * 60 * 60)))
    
    # Admin account
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
    ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
    ADMIN_HOURLY_RATE = float(os.getenv("ADMIN_HOURLY_RATE", "0"))
    SEED_ADMIN = parse_bool_env("SEED_ADMIN", True)
    
    # Record store settings
    DATA_DIR = os.getenv("DATA_DIR", "./data")
    
    # Pages the identity provider callback redirects to
    ADMIN_PAGE = os.getenv("ADMIN_PAGE", "/admin.html")
    DASHBOARD_PAGE = os.getenv("DASHBOARD_PAGE", "/dashboard.html")
    LOGIN_PAGE = os.getenv("LOGIN_PAGE", "/login.html")
    UNAUTHORIZED_PAGE = os.getenv("UNAUTHORIZED_PAGE", "/unauthorized.html")
    
    # Development settings
    DEVELOPMENT_MODE = parse_bool_env("DEVELOPMENT_MODE", False)
    ENABLE_API_DOCS = parse_bool_env("ENABLE_API_DOCS", True)
    
    # CORS settings
    CORS_ORIGINS = parse_list_env("CORS_ORIGINS", ["http://localhost:3000"])
    CORS_ALLOW_CREDENTIALS = parse_bool_env("CORS_ALLOW_CREDENTIALS", True)
    
    # App metadata
    APP_NAME = os.getenv("APP_NAME", "Sheet Timeclock")
    APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
    APP_DESCRIPTION = os.getenv("APP_DESCRIPTION", "Employee time tracking against Google Sheets")
