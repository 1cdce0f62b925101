from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from google.oauth2.credentials import Credentials

from models.mailbox import EmailContent, Message, Thread
from services.errors import AuthError, AutoReplyError, EncodingError
from services.label_resolver import LabelResolver
from services.mail_directory import MailDirectory
from services.message_composer import MessageComposer

LOGGER = logging.getLogger(__name__)


class CredentialSource(Protocol):
    def valid_credentials(self) -> Credentials: ...


class Disposition(enum.Enum):
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"


def classify(thread: Thread) -> Disposition:
    """A thread holding only the incoming message has not been answered yet."""

    return Disposition.ELIGIBLE if thread.depth == 1 else Disposition.INELIGIBLE


@dataclass(slots=True)
class ReplyTemplate:
    subject: str
    body: str

    def for_sender(self, sender: str | None) -> EmailContent:
        if not sender:
            raise EncodingError("Thread message has no From header to reply to")
        return EmailContent(to=sender, subject=self.subject, text=self.body)


@dataclass(slots=True)
class CycleReport:
    candidates: int = 0
    replied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    unlabeled: List[str] = field(default_factory=list)
    stopped: bool = False
    error: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.error is not None


class ReconciliationLoop:
    """One poll cycle: find unanswered unread threads, reply once and label the message."""

    def __init__(
        self,
        credentials: CredentialSource,
        directory: MailDirectory,
        template: ReplyTemplate,
        label_name: str = "AutoReplied",
        composer: MessageComposer | None = None,
        resolver: LabelResolver | None = None,
        stop_event: threading.Event | None = None,
        reauth_url: str | None = None,
    ):
        self._credentials = credentials
        self._directory = directory
        self._template = template
        self._label_name = label_name
        self._composer = composer or MessageComposer()
        self._resolver = resolver or LabelResolver(directory)
        self._stop_event = stop_event or threading.Event()
        self._reauth_url = reauth_url

    def run(self) -> CycleReport:
        report = CycleReport()
        try:
            self._directory.authorize(self._credentials.valid_credentials())
            candidates = self._directory.list_unread_primary()
        except AuthError as exc:
            self._log_auth_failure("Gmail rejected the stored credentials", exc)
            report.error = str(exc)
            return report
        except AutoReplyError as exc:
            LOGGER.error("Skipping this cycle: %s", exc)
            report.error = str(exc)
            return report

        report.candidates = len(candidates)
        if not candidates:
            LOGGER.info("No unread primary messages")
            return report

        for message in candidates:
            if self._stop_event.is_set():
                LOGGER.info("Stop requested; leaving %s message(s) for later", report.candidates - self._handled(report))
                report.stopped = True
                break
            try:
                self._process(message, report)
            except AuthError as exc:
                self._log_auth_failure(f"Credentials rejected while handling {message.id}", exc)
                if message.id not in report.replied:
                    report.failed.append(message.id)
                report.error = str(exc)
                break
            except AutoReplyError as exc:
                LOGGER.warning("Failed to handle message %s: %s", message.id, exc)
                report.failed.append(message.id)

        LOGGER.info(
            "Cycle finished: %s candidate(s), %s replied, %s skipped, %s failed",
            report.candidates,
            len(report.replied),
            len(report.skipped),
            len(report.failed),
        )
        return report

    def _process(self, message: Message, report: CycleReport) -> None:
        thread = self._directory.get_thread(message.thread_id)
        if classify(thread) is Disposition.INELIGIBLE:
            LOGGER.info("Email with ID %s already has a reply in thread %s", message.id, thread.id)
            report.skipped.append(message.id)
            return

        marker = self._resolver.lookup(self._label_name)
        if marker is not None and any(marker in item.label_ids for item in thread.messages):
            LOGGER.info("Email with ID %s is already labelled %s; not replying again", message.id, self._label_name)
            report.skipped.append(message.id)
            return

        content = self._template.for_sender(thread.messages[0].sender)
        raw = self._composer.compose(content)
        self._directory.send_message(raw, thread.id)
        report.replied.append(message.id)
        LOGGER.info("Replied to email with ID: %s", message.id)

        try:
            label_id = self._resolver.resolve(self._label_name)
            self._directory.apply_label(message.id, label_id)
        except AuthError:
            report.unlabeled.append(message.id)
            raise
        except AutoReplyError as exc:
            # Without the label the next cycle relies on the reply having joined the thread.
            LOGGER.warning("Replied to %s but could not label it %s: %s", message.id, self._label_name, exc)
            report.unlabeled.append(message.id)

    def _log_auth_failure(self, context: str, exc: AuthError) -> None:
        LOGGER.error("%s: %s", context, exc)
        if self._reauth_url:
            LOGGER.error("Re-authorize by visiting %s", self._reauth_url)

    @staticmethod
    def _handled(report: CycleReport) -> int:
        return len(report.replied) + len(report.skipped) + len(report.failed)
