"""Pydantic-based configuration helpers for the order approval relay."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Iterable, List

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

DEFAULT_SUPPORT_URL = "https://discord.gg/eXPMuw52hV"


class AppSettings(BaseModel):
    """Settings required to run the webhook relay, the Slack bot and the mailer."""

    bot_token: str = Field(..., alias="SLACK_BOT_TOKEN")
    signing_secret: str = Field(..., alias="SLACK_SIGNING_SECRET")
    review_channel_id: str = Field(..., alias="SLACK_REVIEW_CHANNEL_ID")
    smtp_host: str = Field(..., alias="SMTP_HOST")
    smtp_port: int = Field(..., alias="SMTP_PORT")
    email_user: str = Field(..., alias="EMAIL_USER")
    email_password: str = Field(..., alias="EMAIL_PASS")
    email_from: str | None = Field(None, alias="EMAIL_FROM")
    webhook_secret: str | None = Field(None, alias="WEBHOOK_SECRET")
    commerce_api_url: str | None = Field(None, alias="WOOCOMMERCE_API_URL")
    commerce_consumer_key: str | None = Field(None, alias="WOOCOMMERCE_CONSUMER_KEY")
    commerce_consumer_secret: str | None = Field(None, alias="WOOCOMMERCE_CONSUMER_SECRET")
    port: int = Field(3000, alias="PORT")
    http_timeout_seconds: float = Field(5.0, alias="HTTP_TIMEOUT_SECONDS")
    store_name: str = Field("ArcMC", alias="STORE_NAME")
    support_url: str = Field(DEFAULT_SUPPORT_URL, alias="SUPPORT_URL")
    resolved_prompt_capacity: int = Field(1024, alias="RESOLVED_PROMPT_CAPACITY")

    @field_validator(
        "email_from",
        "webhook_secret",
        "commerce_api_url",
        "commerce_consumer_key",
        "commerce_consumer_secret",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = str(value).strip()
        return trimmed or None

    @field_validator("port", "smtp_port")
    @classmethod
    def _ensure_port_range(cls, value: int) -> int:
        if not 0 < value < 65536:
            raise ValueError("Ports must be between 1 and 65535")
        return value

    @field_validator("http_timeout_seconds")
    @classmethod
    def _ensure_positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("HTTP timeout must be greater than zero")
        return value

    @field_validator("resolved_prompt_capacity")
    @classmethod
    def _ensure_positive_capacity(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Resolved prompt capacity must be greater than zero")
        return value

    @model_validator(mode="after")
    def _commerce_credentials_complete(self):
        values = (self.commerce_api_url, self.commerce_consumer_key, self.commerce_consumer_secret)
        if any(values) and not all(values):
            raise ValueError(
                "WOOCOMMERCE_API_URL, WOOCOMMERCE_CONSUMER_KEY and "
                "WOOCOMMERCE_CONSUMER_SECRET must be provided together"
            )
        return self

    @property
    def sender_address(self) -> str:
        return self.email_from or self.email_user

    @property
    def commerce_enabled(self) -> bool:
        return self.commerce_api_url is not None


def _format_missing(fields: Iterable[str]) -> str:
    """Return a human-friendly comma-separated list of missing env vars."""

    unique: List[str] = []
    for field in fields:
        if field not in unique:
            unique.append(field)
    return ", ".join(unique)


@lru_cache()
def get_settings() -> AppSettings:
    """Fetch and cache settings from environment variables."""

    try:
        return AppSettings.model_validate(os.environ)
    except ValidationError as exc:
        missing = [str(error["loc"][0]) for error in exc.errors() if error["type"] == "missing"]
        if missing:
            message = (
                "Missing required environment variables: "
                f"{_format_missing(missing)}"
            )
        else:
            invalid = [str(error["loc"][0]) if error["loc"] else error["msg"] for error in exc.errors()]
            message = f"Invalid environment configuration: {_format_missing(invalid)}"
        raise RuntimeError(message) from exc
