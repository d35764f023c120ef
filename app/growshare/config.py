import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    api_rate_limit: int
    api_rate_window: int
    register_ip_limit: int
    register_ip_window: int
    register_email_limit: int
    register_email_window: int
    login_rate_limit: int
    login_rate_window: int
    throttle_max_keys: int


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///growshare.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        api_rate_limit=_getint("API_RATE_LIMIT", 100),
        api_rate_window=_getint("API_RATE_WINDOW", 60),
        register_ip_limit=_getint("REGISTER_IP_LIMIT", 5),
        register_ip_window=_getint("REGISTER_IP_WINDOW", 60),
        register_email_limit=_getint("REGISTER_EMAIL_LIMIT", 3),
        register_email_window=_getint("REGISTER_EMAIL_WINDOW", 60 * 60),
        login_rate_limit=_getint("LOGIN_RATE_LIMIT", 5),
        login_rate_window=_getint("LOGIN_RATE_WINDOW", 300),
        throttle_max_keys=_getint("THROTTLE_MAX_KEYS", 10_000),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        # throttles: (limit, window seconds)
        "API_RATE_LIMIT": (s.api_rate_limit, s.api_rate_window),
        "REGISTER_IP_LIMIT": (s.register_ip_limit, s.register_ip_window),
        "REGISTER_EMAIL_LIMIT": (s.register_email_limit, s.register_email_window),
        "LOGIN_RATE_LIMIT": (s.login_rate_limit, s.login_rate_window),
        "THROTTLE_MAX_KEYS": s.throttle_max_keys,
        # security defaults
        "SESSION_COOKIE_NAME": "secure-session-token",
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # request body limit (2MB)
        "MAX_CONTENT_LENGTH": 2 * 1024 * 1024,
    }
