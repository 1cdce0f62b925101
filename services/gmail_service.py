from __future__ import annotations

import http.client
import logging
from typing import Any, Dict, List, Sequence

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from models.mailbox import Label, Message, Thread
from services.errors import AuthError, ProviderError, TransientProviderError
from services.mail_directory import MailDirectory

LOGGER = logging.getLogger(__name__)
UNREAD_PRIMARY_QUERY = "in:inbox is:unread category:primary"
AUTH_STATUSES = {401, 403}
RETRYABLE_STATUSES = {408, 429}


class GmailService(MailDirectory):
    """Gmail API variant of the mail directory."""

    def __init__(self, user_id: str = "me", timeout: float = 30.0, client: Any = None):
        self._user_id = user_id
        self._timeout = timeout
        self._client = client

    @property
    def user_id(self) -> str:
        return self._user_id

    def authorize(self, credentials: Credentials) -> None:
        http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=self._timeout))
        self._client = build("gmail", "v1", http=http, cache_discovery=False)
        LOGGER.debug("Gmail client bound for user %s (timeout %.0fs)", self._user_id, self._timeout)

    def list_unread_primary(self) -> List[Message]:
        messages: List[Message] = []
        page_token = None
        while True:
            response = self._execute(
                "list unread messages",
                self._users()
                .messages()
                .list(userId=self._user_id, q=UNREAD_PRIMARY_QUERY, pageToken=page_token),
            )
            for item in response.get("messages", []) or []:
                messages.append(Message(id=item["id"], thread_id=item["threadId"]))
            page_token = response.get("nextPageToken")
            if not page_token:
                break
        LOGGER.info("Fetched %s unread primary message headers", len(messages))
        return messages

    def get_thread(self, thread_id: str) -> Thread:
        response = self._execute(
            f"get thread {thread_id}",
            self._users()
            .threads()
            .get(userId=self._user_id, id=thread_id, format="metadata", metadataHeaders=["From"]),
        )
        return _thread_from_response(response)

    def list_labels(self) -> List[Label]:
        response = self._execute("list labels", self._users().labels().list(userId=self._user_id))
        return [Label(id=item["id"], name=item["name"]) for item in response.get("labels", []) or []]

    def create_label(self, name: str) -> Label:
        body = {"name": name, "labelListVisibility": "labelShow", "messageListVisibility": "show"}
        response = self._execute(
            f"create label {name}",
            self._users().labels().create(userId=self._user_id, body=body),
        )
        LOGGER.info("Created label %s with id %s", name, response["id"])
        return Label(id=response["id"], name=response.get("name", name))

    def send_message(self, raw: bytes, thread_id: str) -> None:
        body = {"raw": raw.decode("ascii"), "threadId": thread_id}
        response = self._execute(
            f"send reply in thread {thread_id}",
            self._users().messages().send(userId=self._user_id, body=body),
        )
        LOGGER.debug("Sent message %s in thread %s", response.get("id"), thread_id)

    def apply_label(self, message_id: str, label_id: str) -> None:
        body = {"addLabelIds": [label_id]}
        self._execute(
            f"label message {message_id}",
            self._users().messages().modify(userId=self._user_id, id=message_id, body=body),
        )
        LOGGER.info("Applied label %s to message %s", label_id, message_id)

    def _users(self):
        if self._client is None:
            raise AuthError("Gmail client used before authorize()")
        return self._client.users()

    def _execute(self, action: str, request) -> Dict:
        try:
            return request.execute()
        except HttpError as exc:
            raise translate_http_error(action, exc) from exc
        except RefreshError as exc:
            raise AuthError(f"Failed to {action}: credentials rejected ({exc})") from exc
        except (TransportError, httplib2.HttpLib2Error, http.client.HTTPException, OSError, ValueError) as exc:
            raise TransientProviderError(f"Failed to {action}: {exc}") from exc


def translate_http_error(action: str, exc: HttpError) -> ProviderError | AuthError:
    status = exc.resp.status if exc.resp is not None else 0
    message = f"Failed to {action}: HTTP {status} {exc.reason}"
    if status in AUTH_STATUSES:
        return AuthError(message)
    if status in RETRYABLE_STATUSES or status >= 500:
        return TransientProviderError(message)
    return ProviderError(message)


def _thread_from_response(response: Dict) -> Thread:
    thread_id = response["id"]
    messages = tuple(
        Message(
            id=item["id"],
            thread_id=item.get("threadId", thread_id),
            sender=_headers_to_dict(item.get("payload", {}).get("headers", [])).get("from"),
            label_ids=tuple(item.get("labelIds", [])),
        )
        for item in response.get("messages", []) or []
    )
    return Thread(id=thread_id, messages=messages)


def _headers_to_dict(headers: Sequence[Dict[str, str]]) -> Dict[str, str]:
    mapped: Dict[str, str] = {}
    for header in headers:
        name = header.get("name", "").lower()
        value = header.get("value", "")
        mapped[name] = value
    return mapped
