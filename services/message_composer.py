from __future__ import annotations

import base64
from typing import List

from models.mailbox import EmailContent
from services.errors import EncodingError

MIME_HEADERS = (
    "Content-Type: text/plain; charset=UTF-8",
    "MIME-Version: 1.0",
    "Content-Transfer-Encoding: 7bit",
)


class MessageComposer:
    """Build the base64url ``raw`` payload Gmail expects for ``messages.send``."""

    def compose(self, content: EmailContent) -> bytes:
        lines = self.render(content)
        try:
            payload = "\n".join(lines).encode("utf-8")
        except UnicodeEncodeError as exc:
            raise EncodingError(f"Reply to {content.to!r} is not encodable: {exc}") from exc
        return base64.urlsafe_b64encode(payload)

    def render(self, content: EmailContent) -> List[str]:
        recipient = (content.to or "").strip()
        if not recipient:
            raise EncodingError("Reply has no recipient")
        _check_header("to", recipient)
        _check_header("subject", content.subject or "")
        return [
            *MIME_HEADERS,
            f"to: {recipient}",
            f"subject: {content.subject or ''}",
            "",
            content.text or "",
        ]


def _check_header(name: str, value: str) -> None:
    if "\r" in value or "\n" in value:
        raise EncodingError(f"Header {name!r} contains a line break")
