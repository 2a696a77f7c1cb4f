"""
Django settings for running the chatflow app (tests and local use).
"""

import os

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "chatflow-insecure-dev-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "true").lower() == "true"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    "chatflow",
]

DATABASES = {}
USE_TZ = True

CHATFLOW_API_BASE = os.environ.get("CHATFLOW_API_BASE", "https://api.openai.com/v1")
CHATFLOW_API_KEY = os.environ.get("CHATFLOW_API_KEY") or os.environ.get("OPENAI_API_KEY")
CHATFLOW_DEFAULT_MODEL = os.environ.get("CHATFLOW_DEFAULT_MODEL", "gpt-4o-mini")
CHATFLOW_ALLOWED_MODELS = [
    m.strip() for m in os.environ.get("CHATFLOW_ALLOWED_MODELS", "").split(",") if m.strip()
]
CHATFLOW_REQUEST_TIMEOUT = float(os.environ.get("CHATFLOW_REQUEST_TIMEOUT", "60"))
CHATFLOW_MAX_TOOL_ITERATIONS = int(os.environ.get("CHATFLOW_MAX_TOOL_ITERATIONS", "8"))
CHATFLOW_MAX_CONCURRENT_STREAMS = int(os.environ.get("CHATFLOW_MAX_CONCURRENT_STREAMS", "20"))
CHATFLOW_TRANSPORT = os.environ.get("CHATFLOW_TRANSPORT", "httpx")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "chatflow": {
            "handlers": ["console"],
            "level": os.environ.get("CHATFLOW_LOG_LEVEL", "INFO"),
        },
    },
}
