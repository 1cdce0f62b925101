from __future__ import annotations

import logging
from pathlib import Path

from utils.logger import LOG_FILE_NAME, TokenRedactingFilter, configure_logging


def _record(msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord("services.auth_service", logging.INFO, __file__, 1, msg, args, None)


def test_token_payload_values_are_masked() -> None:
    record = _record("Token response %s", '{"access_token": "ya29.secret", "refresh_token": "1//refresh", "expires_in": 3599}')

    assert TokenRedactingFilter().filter(record)

    message = record.getMessage()
    assert "ya29.secret" not in message
    assert "1//refresh" not in message
    assert '"expires_in": 3599' in message


def test_callback_code_and_client_secret_are_masked() -> None:
    record = _record("GET /auth/callback?code=4/0Abc&scope=gmail client_secret=s3cr3t")

    TokenRedactingFilter().filter(record)

    assert record.getMessage() == "GET /auth/callback?code=***&scope=gmail client_secret=***"


def test_plain_messages_are_left_alone() -> None:
    record = _record("Replied to email with ID: %s", "m1")

    TokenRedactingFilter().filter(record)

    assert record.args == ("m1",)
    assert record.getMessage() == "Replied to email with ID: m1"


def test_file_log_is_redacted(tmp_path: Path) -> None:
    log_path = configure_logging(tmp_path, "INFO")

    logging.getLogger("services.credential_store").info("Saved token refresh_token=1//refresh")

    assert log_path == tmp_path / LOG_FILE_NAME
    content = log_path.read_text(encoding="utf-8")
    assert "refresh_token=***" in content
    assert "1//refresh" not in content
