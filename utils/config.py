from __future__ import annotations

import base64
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from services.errors import ConfigError

DEFAULT_REPLY_SUBJECT = "Re: AutoGenerated Reply"
DEFAULT_REPLY_BODY = (
    "Thank you for your email. I am currently out of the office and will respond as soon as possible."
)


@dataclass(slots=True)
class AppConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    host: str
    port: int
    token_file: Path
    user_id: str
    label_name: str
    reply_subject: str
    reply_body: str
    poll_min_seconds: int
    poll_max_seconds: int
    request_timeout: float
    log_dir: Path
    log_level: str

    @property
    def auth_start_url(self) -> str:
        return f"http://{self.host}:{self.port}/auth/start"


def _require(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise ConfigError(f"Missing required setting {name}")
    return value


def _int_setting(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _maybe_write_secret_file(target: Path, inline_value: str | None, b64_value: str | None) -> None:
    if not inline_value and not b64_value:
        return
    target.parent.mkdir(parents=True, exist_ok=True)
    if inline_value:
        target.write_text(inline_value, encoding="utf-8")
        return
    try:
        decoded = base64.b64decode(b64_value or "", validate=True)
    except ValueError as exc:
        raise ConfigError("Failed to decode TOKEN_B64") from exc
    target.write_bytes(decoded)


def load_config(env_file: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load configuration values from a .env file and environment variables."""

    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)

    client_id = _require("CLIENT_ID")
    client_secret = _require("CLIENT_SECRET")
    redirect_uri = _require("REDIRECT_URI")

    token_file = Path(os.getenv("TOKEN_PATH") or "./token.json").expanduser()
    _maybe_write_secret_file(token_file, os.getenv("TOKEN_JSON"), os.getenv("TOKEN_B64"))

    poll_min = _int_setting("POLL_MIN_SECONDS", 45)
    poll_max = _int_setting("POLL_MAX_SECONDS", 120)
    if poll_min <= 0 or poll_max < poll_min:
        raise ConfigError(f"Invalid poll range {poll_min}-{poll_max} seconds")

    try:
        request_timeout = float(os.getenv("REQUEST_TIMEOUT", "30"))
    except ValueError as exc:
        raise ConfigError("REQUEST_TIMEOUT must be a number of seconds") from exc

    return AppConfig(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        host=os.getenv("HOST", "localhost"),
        port=_int_setting("PORT", 3000),
        token_file=token_file,
        user_id=os.getenv("GMAIL_USER_ID", "me"),
        label_name=os.getenv("AUTO_REPLY_LABEL", "AutoReplied"),
        reply_subject=os.getenv("AUTO_REPLY_SUBJECT", DEFAULT_REPLY_SUBJECT),
        reply_body=os.getenv("AUTO_REPLY_BODY", DEFAULT_REPLY_BODY),
        poll_min_seconds=poll_min,
        poll_max_seconds=poll_max,
        request_timeout=request_timeout,
        log_dir=Path(os.getenv("LOG_DIR") or "logs").expanduser(),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
