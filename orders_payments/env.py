import os
from typing import NamedTuple

from dotenv import load_dotenv

load_dotenv()

SQUARE_BASE_URLS = {
    "sandbox": "https://connect.squareupsandbox.com",
    "production": "https://connect.squareup.com",
}

SQUARE_WEB_PAYMENTS_SDK_URLS = {
    "sandbox": "https://sandbox.web.squarecdn.com/v1/square.js",
    "production": "https://web.squarecdn.com/v1/square.js",
}


class EnvConfig(NamedTuple):
    DJANGO_DEBUG: bool
    DJANGO_SECRET_KEY: str
    ALLOWED_HOSTS: list[str]
    LOG_LEVEL: str
    # Square configuration
    SQUARE_ACCESS_TOKEN: str
    SQUARE_APPLICATION_ID: str
    SQUARE_LOCATION_ID: str
    SQUARE_ENVIRONMENT: str
    SQUARE_API_VERSION: str
    SQUARE_REQUEST_TIMEOUT: int
    # Pickup windows offered on the delivery/pickup step
    PICKUP_SLOT_MINUTES: int
    PICKUP_SLOT_COUNT: int
    PICKUP_LEAD_MINUTES: int

    def get_square_base_url(self) -> str:
        return SQUARE_BASE_URLS[self.SQUARE_ENVIRONMENT]

    def get_web_payments_sdk_url(self) -> str:
        """URL of the Square Web Payments SDK script used to tokenize cards."""
        return SQUARE_WEB_PAYMENTS_SDK_URLS[self.SQUARE_ENVIRONMENT]


envConfig: EnvConfig | None = None


def getFromEnv(name: str, optional=False) -> str:
    var = os.getenv(name)

    if not optional and var is None:
        raise ValueError(f"The environment variable `${name}` is empty.")

    return var if var is not None else ""


def getBoolFromEnv(name: str) -> bool:
    return getFromEnv(name, True).strip() != ""


def getListFromEnv(name: str) -> list[str]:
    value = getFromEnv(name, True)
    return [host.strip() for host in value.split(",") if host.strip()]


def getIntFromEnv(name: str, default: int | None = None) -> int:
    value = getFromEnv(name, default is not None)
    if not value and default is not None:
        return default
    try:
        return int(value)
    except ValueError:
        if default is not None:
            return default
        raise ValueError(f"The environment variable `${name}` must be a valid integer.")


def getChoiceFromEnv(name: str, choices, default: str) -> str:
    value = getFromEnv(name, True).strip().lower() or default
    if value not in choices:
        raise ValueError(f"The environment variable `${name}` must be one of: {', '.join(sorted(choices))}.")
    return value


def getEnvConfig() -> EnvConfig:
    global envConfig

    if envConfig is not None:
        return envConfig

    envConfig = EnvConfig(
        DJANGO_DEBUG=getBoolFromEnv("DJANGO_DEBUG"),
        DJANGO_SECRET_KEY=getFromEnv("DJANGO_SECRET_KEY"),
        ALLOWED_HOSTS=getListFromEnv("ALLOWED_HOSTS"),
        LOG_LEVEL=getFromEnv("LOG_LEVEL", optional=True).upper() or "INFO",
        SQUARE_ACCESS_TOKEN=getFromEnv("SQUARE_ACCESS_TOKEN"),
        SQUARE_APPLICATION_ID=getFromEnv("SQUARE_APPLICATION_ID"),
        SQUARE_LOCATION_ID=getFromEnv("SQUARE_LOCATION_ID"),
        SQUARE_ENVIRONMENT=getChoiceFromEnv("SQUARE_ENVIRONMENT", SQUARE_BASE_URLS.keys(), "sandbox"),
        SQUARE_API_VERSION=getFromEnv("SQUARE_API_VERSION", optional=True) or "2024-01-18",
        SQUARE_REQUEST_TIMEOUT=getIntFromEnv("SQUARE_REQUEST_TIMEOUT", 30),
        PICKUP_SLOT_MINUTES=getIntFromEnv("PICKUP_SLOT_MINUTES", 30),
        PICKUP_SLOT_COUNT=getIntFromEnv("PICKUP_SLOT_COUNT", 8),
        PICKUP_LEAD_MINUTES=getIntFromEnv("PICKUP_LEAD_MINUTES", 15),
    )

    return envConfig
