"""Configuration centralizzata (core) con validazione minima."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_VINTAGE_YEARS: tuple[int, ...] = (2024, 2025)


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _first_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return ""


def _parse_years(raw: str | None) -> tuple[int, ...]:
    if not raw:
        return DEFAULT_VINTAGE_YEARS
    years: list[int] = []
    for entry in raw.split(","):
        cleaned = entry.strip()
        if not cleaned:
            continue
        try:
            year = int(cleaned)
        except ValueError:
            continue
        if year not in years:
            years.append(year)
    return tuple(years) or DEFAULT_VINTAGE_YEARS


@dataclass(frozen=True)
class AppSettings:
    app_env: str = "development"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    email_redirect_url: str | None = None
    auto_refresh_token: bool = True
    persist_session: bool = True
    vintage_years: tuple[int, ...] = DEFAULT_VINTAGE_YEARS
    log_level: str = "INFO"

    @property
    def is_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @staticmethod
    def load() -> "AppSettings":
        # I nomi NEXT_PUBLIC_* restano accettati per riusare lo stesso .env del vecchio front.
        return AppSettings(
            app_env=os.getenv("APP_ENV", os.getenv("ENV", "development")).lower(),
            supabase_url=_first_env("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
            supabase_anon_key=_first_env("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
            email_redirect_url=_first_env("EMAIL_REDIRECT_URL") or None,
            auto_refresh_token=_bool_env("SUPABASE_AUTO_REFRESH_TOKEN", True),
            persist_session=_bool_env("SUPABASE_PERSIST_SESSION", True),
            vintage_years=_parse_years(os.getenv("VINTAGE_YEARS")),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
