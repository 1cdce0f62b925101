from __future__ import annotations

import base64
import http.client
from unittest import mock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from models.mailbox import Label, Message
from services.errors import AuthError, ProviderError, TransientProviderError
from services.gmail_service import UNREAD_PRIMARY_QUERY, GmailService, translate_http_error
from services.reconciliation import ReconciliationLoop, ReplyTemplate


class StubCredentials:
    def valid_credentials(self):
        return object()


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"", uri="https://gmail.googleapis.com/")


@pytest.mark.parametrize(
    ("status", "expected"),
    [(401, AuthError), (403, AuthError), (429, TransientProviderError), (503, TransientProviderError), (404, ProviderError)],
)
def test_http_errors_are_translated(status: int, expected: type) -> None:
    error = translate_http_error("get thread t1", _http_error(status))

    assert type(error) is expected
    assert "get thread t1" in str(error)


def test_list_unread_primary_follows_pages() -> None:
    client = mock.MagicMock()
    messages = client.users.return_value.messages.return_value
    messages.list.return_value.execute.side_effect = [
        {"messages": [{"id": "m1", "threadId": "t1"}], "nextPageToken": "p2"},
        {"messages": [{"id": "m2", "threadId": "t2"}]},
    ]

    result = GmailService(client=client).list_unread_primary()

    assert result == [Message(id="m1", thread_id="t1"), Message(id="m2", thread_id="t2")]
    assert messages.list.call_args_list[0].kwargs == {"userId": "me", "q": UNREAD_PRIMARY_QUERY, "pageToken": None}
    assert messages.list.call_args_list[1].kwargs["pageToken"] == "p2"


def test_empty_listing_is_not_an_error() -> None:
    client = mock.MagicMock()
    client.users.return_value.messages.return_value.list.return_value.execute.return_value = {"resultSizeEstimate": 0}

    assert GmailService(client=client).list_unread_primary() == []


def test_get_thread_parses_sender_and_depth() -> None:
    client = mock.MagicMock()
    client.users.return_value.threads.return_value.get.return_value.execute.return_value = {
        "id": "t1",
        "messages": [
            {
                "id": "m1",
                "threadId": "t1",
                "labelIds": ["UNREAD", "INBOX"],
                "payload": {"headers": [{"name": "From", "value": "a@example.com"}]},
            }
        ],
    }

    thread = GmailService(client=client).get_thread("t1")

    assert thread.depth == 1
    assert thread.messages[0].sender == "a@example.com"
    assert thread.messages[0].label_ids == ("UNREAD", "INBOX")


def test_send_message_replies_in_thread() -> None:
    client = mock.MagicMock()
    send = client.users.return_value.messages.return_value.send
    send.return_value.execute.return_value = {"id": "sent-1"}
    raw = base64.urlsafe_b64encode(b"to: a@example.com\n\nhi")

    GmailService(user_id="me", client=client).send_message(raw, "t1")

    send.assert_called_once_with(userId="me", body={"raw": raw.decode("ascii"), "threadId": "t1"})


def test_labels_are_listed_created_and_applied() -> None:
    client = mock.MagicMock()
    labels = client.users.return_value.labels.return_value
    labels.list.return_value.execute.return_value = {"labels": [{"id": "INBOX", "name": "INBOX", "type": "system"}]}
    labels.create.return_value.execute.return_value = {"id": "Label_7", "name": "AutoReplied"}
    modify = client.users.return_value.messages.return_value.modify
    service = GmailService(client=client)

    assert service.list_labels() == [Label(id="INBOX", name="INBOX")]
    assert service.create_label("AutoReplied") == Label(id="Label_7", name="AutoReplied")
    service.apply_label("m1", "Label_7")

    modify.assert_called_once_with(userId="me", id="m1", body={"addLabelIds": ["Label_7"]})


def test_timeouts_become_transient_errors() -> None:
    client = mock.MagicMock()
    client.users.return_value.labels.return_value.list.return_value.execute.side_effect = TimeoutError("timed out")

    with pytest.raises(TransientProviderError):
        GmailService(client=client).list_labels()


@pytest.mark.parametrize(
    "error",
    [http.client.IncompleteRead(b""), http.client.BadStatusLine(""), ValueError("Expecting value: line 1 column 1")],
)
def test_broken_responses_become_transient_errors(error: Exception) -> None:
    client = mock.MagicMock()
    client.users.return_value.threads.return_value.get.return_value.execute.side_effect = error

    with pytest.raises(TransientProviderError):
        GmailService(client=client).get_thread("t1")


def test_incomplete_read_does_not_stop_the_batch() -> None:
    client = mock.MagicMock()
    threads = client.users.return_value.threads.return_value
    threads.get.return_value.execute.side_effect = [
        http.client.IncompleteRead(b""),
        {
            "id": "t2",
            "messages": [
                {"id": "m2", "threadId": "t2", "payload": {"headers": [{"name": "From", "value": "a@example.com"}]}}
            ],
        },
    ]
    messages = client.users.return_value.messages.return_value
    messages.list.return_value.execute.return_value = {
        "messages": [{"id": "m1", "threadId": "t1"}, {"id": "m2", "threadId": "t2"}]
    }
    messages.send.return_value.execute.return_value = {"id": "sent-1"}
    labels = client.users.return_value.labels.return_value
    labels.list.return_value.execute.return_value = {"labels": [{"id": "Label_1", "name": "AutoReplied"}]}
    service = GmailService(client=client)
    service.authorize = lambda credentials: None

    report = ReconciliationLoop(
        StubCredentials(), service, ReplyTemplate(subject="Re: AutoGenerated Reply", body="Out of office.")
    ).run()

    assert report.failed == ["m1"]
    assert report.replied == ["m2"]
    messages.modify.assert_called_once_with(userId="me", id="m2", body={"addLabelIds": ["Label_1"]})


def test_server_errors_become_transient_errors() -> None:
    client = mock.MagicMock()
    client.users.return_value.threads.return_value.get.return_value.execute.side_effect = _http_error(500)

    with pytest.raises(TransientProviderError):
        GmailService(client=client).get_thread("t1")


def test_unbound_service_refuses_calls() -> None:
    with pytest.raises(AuthError):
        GmailService().list_labels()
