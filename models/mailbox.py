from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Message:
    """A Gmail message reference as listed or as found inside a thread."""

    id: str
    thread_id: str
    sender: str | None = None
    label_ids: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Thread:
    id: str
    messages: Tuple[Message, ...] = field(default_factory=tuple)

    @property
    def depth(self) -> int:
        return len(self.messages)


@dataclass(frozen=True, slots=True)
class Label:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class EmailContent:
    """Logical reply payload consumed by the message composer."""

    to: str
    subject: str
    text: str
