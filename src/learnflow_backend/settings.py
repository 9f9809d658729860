import os
import threading


def _as_bool(value: str) -> bool:
    return value.lower() in ["true", "1", "yes", "on"]


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE", "development")
        self.APP_URL = os.environ.get("APP_URL", "http://localhost:3000").rstrip("/")
        self.CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

        # Session cookie
        self.SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "learnflow_session")
        self.SESSION_MAX_AGE_DAYS = int(os.environ.get("SESSION_MAX_AGE_DAYS", 7))
        self.SESSION_COOKIE_SECURE = _as_bool(
            os.environ.get("SESSION_COOKIE_SECURE", str(self.DEBUG_MODE == "production"))
        )

        # Credential provisioning
        self.INVITE_TTL_HOURS = int(os.environ.get("INVITE_TTL_HOURS", 72))
        self.RESET_CODE_TTL_MINUTES = int(os.environ.get("RESET_CODE_TTL_MINUTES", 30))

        # Outbound email (Resend)
        self.RESEND_API_KEY = os.environ.get("RESEND_API_KEY", None)
        self.EMAIL_FROM = os.environ.get("EMAIL_FROM", "LearnFlow <noreply@learnflow.app>")
        self.EMAIL_API_URL = os.environ.get("EMAIL_API_URL", "https://api.resend.com/emails")
        self.EMAIL_TIMEOUT_SECONDS = float(os.environ.get("EMAIL_TIMEOUT_SECONDS", 10))

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_MAX_AGE_DAYS * 24 * 60 * 60

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
