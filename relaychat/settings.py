import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_float(name, default):
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "relaychat-insecure-dev-key")
DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "chat",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "relaychat.urls"
WSGI_APPLICATION = "relaychat.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DJANGO_DB_PATH", BASE_DIR / "db.sqlite3"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"
STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
}

# Upstream completion provider (OpenAI-compatible chat completions API)
API_KEY = os.environ.get("GROQ_API_KEY") or os.environ.get("API_KEY", "")
BASE_URL = os.environ.get("BASE_URL", "https://api.groq.com/openai/v1").rstrip("/")
TEMPERATURE = _env_float("TEMPERATURE", 0.7)
MAX_TOKENS = int(os.environ.get("MAX_TOKENS", "2048"))
TOP_P = _env_float("TOP_P", 1)
UPSTREAM_TIMEOUT = _env_float("UPSTREAM_TIMEOUT", 500)

# Chat client
CHAT_DEFAULT_MODEL = os.environ.get("MODEL_NAME", "mixtral-8x7b-32768")
CHAT_PROXY_URL = os.environ.get("CHAT_PROXY_URL", "http://localhost:8000/api/chat")
CHAT_GATEWAY_TIMEOUT = _env_float("CHAT_GATEWAY_TIMEOUT", None)
CHAT_STORE_PATH = os.environ.get("CHAT_STORE_PATH", str(Path.home() / ".relaychat.json"))

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "chat": {
            "handlers": ["console"],
            "level": os.environ.get("CHAT_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
