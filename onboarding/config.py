import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


class Config:
    """Settings read from the environment (and .env) at import time"""

    DATABASE_PATH = os.getenv('DATABASE_PATH', 'db.sqlite')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', f'sqlite:///{DATABASE_PATH}')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-secret-key-change-me')
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')

    REDIS_HOST = os.getenv('REDIS_HOST', 'localhost')
    REDIS_PORT = _int_env('REDIS_PORT', 6379)

    # empty EMAIL_API_URL means invitations are only logged
    EMAIL_API_URL = os.getenv('EMAIL_API_URL', '')
    EMAIL_API_KEY = os.getenv('EMAIL_API_KEY', '')
    EMAIL_FROM = os.getenv('EMAIL_FROM', 'no-reply@example.com')
    NOTIFY_TIMEOUT_SECONDS = _int_env('NOTIFY_TIMEOUT_SECONDS', 10)

    # 0 keeps cleanup on demand only
    CLEANUP_INTERVAL_SECONDS = _int_env('CLEANUP_INTERVAL_SECONDS', 0)
    ACTION_GUARD_TTL_SECONDS = _int_env('ACTION_GUARD_TTL_SECONDS', 30)

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
