from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from google.oauth2.credentials import Credentials

from models.mailbox import Label, Message, Thread


class MailDirectory(ABC):
    """Capability interface over a remote mailbox.

    Every operation may raise ``TransientProviderError`` or ``AuthError``;
    other refusals surface as ``ProviderError``.
    """

    @abstractmethod
    def authorize(self, credentials: Credentials) -> None:
        """Bind the directory to the credentials used for the coming cycle."""
        raise NotImplementedError

    @abstractmethod
    def list_unread_primary(self) -> List[Message]:
        raise NotImplementedError

    @abstractmethod
    def get_thread(self, thread_id: str) -> Thread:
        raise NotImplementedError

    @abstractmethod
    def list_labels(self) -> List[Label]:
        raise NotImplementedError

    @abstractmethod
    def create_label(self, name: str) -> Label:
        raise NotImplementedError

    @abstractmethod
    def send_message(self, raw: bytes, thread_id: str) -> None:
        """Send an encoded message as a reply inside ``thread_id``."""
        raise NotImplementedError

    @abstractmethod
    def apply_label(self, message_id: str, label_id: str) -> None:
        raise NotImplementedError
