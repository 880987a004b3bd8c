from __future__ import annotations

import json
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings import NoDecode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Rental Back-Office"
    environment: str = Field(default="development")  # development | production
    log_level: str = Field(default="INFO")

    database_url: str = Field(default="sqlite:///./rental_backoffice.db")

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_url(cls, v: str | None) -> str | None:
        # Hosted Postgres URLs come as postgresql://... which makes SQLAlchemy pick psycopg2.
        if v and v.startswith("postgresql://") and "+" not in v.split("?")[0]:
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v

    # Accepts a single URL, a comma-separated string or a JSON list.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        validation_alias="CORS_ORIGINS",
    )

    currency_code: str = Field(default="MAD")

    # Payment submission endpoint used by the HTTP gateway.
    payments_base_url: str = Field(default="http://localhost:8000")
    http_timeout_seconds: float = Field(default=15.0, gt=0)
    # 1 = no automatic retry (operator re-submits by hand).
    payment_retry_attempts: int = Field(default=3, ge=1, le=10)
    payment_retry_max_wait_seconds: float = Field(default=4.0, ge=0)

    # Due-payment policy: "any" ORs every signal, "precedence" lets the first informative signal decide.
    due_policy_strategy: str = Field(default="any")
    due_policy_order: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["has_payment_due", "remaining", "payment_status", "balance"],
    )

    block_completion_with_balance: bool = Field(default=True)

    @field_validator("cors_origins", "due_policy_order", mode="before")
    @classmethod
    def _parse_list(cls, v):  # noqa: ANN001
        """
        Accept: string, comma-separated, or JSON list.
        """
        if v is None:
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except ValueError:
                    parsed = None
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            return [p.strip() for p in s.split(",") if p.strip()]
        if isinstance(v, (list, tuple, set)):
            return [str(x).strip() for x in v if str(x).strip()]
        return v

    @field_validator("cors_origins", mode="after")
    @classmethod
    def _ensure_cors_origins(cls, v: list[str] | None) -> list[str]:
        result = [x for x in v if x] if isinstance(v, list) else []
        if not result:
            result = ["http://localhost:5173"]
        return result

    @field_validator("due_policy_strategy", mode="after")
    @classmethod
    def _check_strategy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"any", "precedence"}:
            raise ValueError("due_policy_strategy must be 'any' or 'precedence'")
        return v


settings = Settings()
