"""
Django settings for the orders_payments pickup checkout.

Every value that varies between deployments comes from the environment,
see orders_payments/env.py. There is no database: Square is the only
source of truth for orders, locations, catalog and payments.
"""

from pathlib import Path

from orders_payments.env import getEnvConfig

env_config = getEnvConfig()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = env_config.DJANGO_SECRET_KEY
DEBUG = env_config.DJANGO_DEBUG
ALLOWED_HOSTS = env_config.ALLOWED_HOSTS

INSTALLED_APPS = [
    "django.contrib.staticfiles",
    "catalog",
    "checkout",
    "order_status",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "checkout.middleware.SquareAPIErrorMiddleware",
]

ROOT_URLCONF = "orders_payments.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "orders_payments.wsgi.application"

DATABASES = {}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "catalog": {
            "handlers": ["console"],
            "level": env_config.LOG_LEVEL,
            "propagate": False,
        },
        "checkout": {
            "handlers": ["console"],
            "level": env_config.LOG_LEVEL,
            "propagate": False,
        },
        "order_status": {
            "handlers": ["console"],
            "level": env_config.LOG_LEVEL,
            "propagate": False,
        },
    },
}
