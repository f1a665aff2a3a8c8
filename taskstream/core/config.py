# core/config.py
from __future__ import annotations
import os

from dotenv import load_dotenv

_TRUTHY = {"1", "true", "yes", "on"}


def bootstrap_env() -> None:
    """Load .env into environment variables."""
    load_dotenv()


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def pubsub_host() -> str:
    return os.getenv("PUBSUB_HOST", "localhost")


def pubsub_scheme() -> str:
    return os.getenv("PUBSUB_SCHEME", "wss")


def pubsub_api_key() -> str:
    return os.getenv("PUBSUB_API_KEY", "")


def api_base_url() -> str:
    return os.getenv("TASKSTREAM_API_URL", "http://localhost:3000").rstrip("/")


def ingress_url() -> str:
    return os.getenv("RESTATE_INGRESS_URL", "http://localhost:8080").rstrip("/")


def ingress_token() -> str:
    return os.getenv("RESTATE_AUTH_TOKEN", "")


def http_timeout() -> float:
    return float(os.getenv("HTTP_TIMEOUT_SECS", "30"))
