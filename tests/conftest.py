from __future__ import annotations

import os
from typing import Dict, List

import pytest

from models.mailbox import Label, Message, Thread
from services.errors import MissingCredentials
from services.mail_directory import MailDirectory


class FakeDirectory(MailDirectory):
    """In-memory mailbox that records every call it receives."""

    def __init__(self, messages: List[Message] | None = None, threads: Dict[str, Thread] | None = None):
        self.messages = list(messages or [])
        self.threads = dict(threads or {})
        self.labels: List[Label] = []
        self.failures: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []
        self.authorized_with = None

    def fail(self, operation: str, argument: str, exc: Exception) -> None:
        self.failures[(operation, argument)] = exc

    def _record(self, operation: str, *args) -> None:
        self.calls.append((operation, *args))
        key = (operation, args[0] if args else "")
        if key in self.failures:
            raise self.failures[key]

    def authorize(self, credentials) -> None:
        self.authorized_with = credentials

    def list_unread_primary(self) -> List[Message]:
        self._record("list_unread_primary")
        return list(self.messages)

    def get_thread(self, thread_id: str) -> Thread:
        self._record("get_thread", thread_id)
        return self.threads[thread_id]

    def list_labels(self) -> List[Label]:
        self._record("list_labels")
        return list(self.labels)

    def create_label(self, name: str) -> Label:
        self._record("create_label", name)
        label = Label(id=f"Label_{len(self.labels) + 1}", name=name)
        self.labels.append(label)
        return label

    def send_message(self, raw: bytes, thread_id: str) -> None:
        self._record("send_message", thread_id, raw)

    def apply_label(self, message_id: str, label_id: str) -> None:
        self._record("apply_label", message_id, label_id)

    def mutations(self) -> List[tuple]:
        return [call for call in self.calls if call[0] in {"create_label", "send_message", "apply_label"}]


class StubCredentials:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.token = object()

    def valid_credentials(self):
        if self.error:
            raise self.error
        return self.token


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def credentials() -> StubCredentials:
    return StubCredentials()


@pytest.fixture
def missing_credentials() -> StubCredentials:
    return StubCredentials(MissingCredentials("No token file at token.json; authorize first"))


SETTINGS = (
    "CLIENT_ID",
    "CLIENT_SECRET",
    "REDIRECT_URI",
    "HOST",
    "PORT",
    "TOKEN_PATH",
    "TOKEN_JSON",
    "TOKEN_B64",
    "GMAIL_USER_ID",
    "AUTO_REPLY_LABEL",
    "AUTO_REPLY_SUBJECT",
    "AUTO_REPLY_BODY",
    "POLL_MIN_SECONDS",
    "POLL_MAX_SECONDS",
    "REQUEST_TIMEOUT",
    "LOG_DIR",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_settings():
    """load_dotenv writes straight into os.environ, so restore it after every test."""

    saved = dict(os.environ)
    for name in SETTINGS:
        os.environ.pop(name, None)
    yield
    os.environ.clear()
    os.environ.update(saved)
