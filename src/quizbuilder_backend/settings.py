import os
import threading


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() in ["true", "1", "yes", "on"]


class BackendSettings:
    _instance = None
    _lock = threading.Lock()

    def __init__(self):
        self.DEBUG_MODE = os.environ.get("DEBUG_MODE", "development")
        # Remote store (access-check endpoints, audit sink, usage)
        self.API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:8000")
        self.API_TIMEOUT = float(os.environ.get("API_TIMEOUT", "10"))
        self.API_TOKEN = os.environ.get("API_TOKEN", None)
        # Verification cache
        self.VERIFICATION_CACHE_TTL = int(os.environ.get("VERIFICATION_CACHE_TTL", "300"))
        self.SHARED_VERIFICATION_CACHE = _env_flag("SHARED_VERIFICATION_CACHE", "false")
        self.REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
        self.REDIS_PORT = int(os.environ.get("REDIS_PORT", "6379"))
        self.REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD", "")
        # Session tokens
        self.JWT_SECRET = os.environ.get("JWT_SECRET", "quizbuilder-development-secret")
        self.JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
        # Only behind a gateway that sets the X-User-* headers itself
        self.TRUST_IDENTITY_HEADERS = _env_flag("TRUST_IDENTITY_HEADERS", "false")
        # Audit
        self.AUDIT_ENABLED = _env_flag("AUDIT_ENABLED", "true")
        # Server-side guards
        self.DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./quizbuilder.db")

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(BackendSettings, cls).__new__(cls)
        return cls._instance

settings = BackendSettings()
