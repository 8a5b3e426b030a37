"""
Runtime settings, read from the environment.

  APP_TZ=America/New_York GEN_PROVIDER=openai GEN_API_KEYS=sk-a,sk-b python -m daily_homily

Keys are never hard-coded; the pool comes from GEN_API_KEYS (comma separated)
or, failing that, the provider's usual single-key variable.
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

PROVIDERS = ("openai", "gemini", "proxy")

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "gemini": "gemini-1.5-flash",
    "proxy": "",
}

SINGLE_KEY_VARS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def _float(env: Dict[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        raise SystemExit(f"[error] {name} must be a number, got {raw!r}")


def _int(env: Dict[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        raise SystemExit(f"[error] {name} must be an integer, got {raw!r}")


def parse_keys(raw: Optional[str]) -> Tuple[str, ...]:
    """'a, b,,a' -> ('a', 'b'); order kept, blanks and repeats dropped."""
    out: list[str] = []
    for part in (raw or "").split(","):
        k = part.strip()
        if k and k not in out:
            out.append(k)
    return tuple(out)


@dataclass(frozen=True)
class Settings:
    app_tz: str = "America/New_York"
    feed_base_url: str = "https://universalis.com"
    feed_region: str = "United.States"
    feed_timeout: float = 25.0
    provider: str = "openai"
    api_keys: Tuple[str, ...] = field(default_factory=tuple)
    model: str = DEFAULT_MODELS["openai"]
    temperature: float = 0.7
    max_attempts: int = 3
    base_delay: float = 1.0
    gen_timeout: float = 60.0
    proxy_url: str = ""

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "Settings":
        env = dict(os.environ if env is None else env)

        provider = (env.get("GEN_PROVIDER") or "openai").strip().lower()
        if provider not in PROVIDERS:
            raise SystemExit(f"[error] GEN_PROVIDER must be one of {', '.join(PROVIDERS)}, got {provider!r}")

        keys = parse_keys(env.get("GEN_API_KEYS"))
        if not keys and provider in SINGLE_KEY_VARS:
            keys = parse_keys(env.get(SINGLE_KEY_VARS[provider]))

        return cls(
            app_tz=env.get("APP_TZ") or "America/New_York",
            feed_base_url=(env.get("FEED_BASE_URL") or "https://universalis.com").rstrip("/"),
            feed_region=env.get("FEED_REGION") or "United.States",
            feed_timeout=_float(env, "FEED_TIMEOUT", 25.0),
            provider=provider,
            api_keys=keys,
            model=env.get("GEN_MODEL") or DEFAULT_MODELS[provider],
            temperature=_float(env, "GEN_TEMP", 0.7),
            # never fewer than 2
            max_attempts=max(2, _int(env, "GEN_MAX_ATTEMPTS", 3)),
            base_delay=_float(env, "GEN_BASE_DELAY", 1.0),
            gen_timeout=_float(env, "GEN_TIMEOUT", 60.0),
            proxy_url=(env.get("GEN_PROXY_URL") or "").strip(),
        )
