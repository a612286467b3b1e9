"""Shared fixtures for Gmail TUI tests."""

from __future__ import annotations

import base64
import threading
from typing import Any

import pytest

from gmail_tui.core.exceptions import MailboxError
from gmail_tui.core.models import (
    FullMessage,
    HeaderDetail,
    MessageHeader,
    MessagePayload,
    MessageStub,
    Token,
)


def b64url(text: str) -> str:
    """Encode text the way Gmail does: base64url without padding."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def text_part(mime_type: str, text: str) -> dict[str, Any]:
    return {"mimeType": mime_type, "body": {"data": b64url(text)}}


class FakeMailbox:
    """In-memory MailboxApi with per-call failure injection."""

    def __init__(
        self,
        ids: list[str] | None = None,
        *,
        unread: set[str] | None = None,
        bodies: dict[str, str] | None = None,
    ) -> None:
        self.ids = ids or []
        self.unread = set(unread or ())
        self.bodies = bodies or {}
        self.fail_listing = False
        self.fail_headers: set[str] = set()
        self.fail_bodies: set[str] = set()
        self.fail_mark_read = False
        self.mark_read_calls: list[str] = []
        self.body_calls: list[str] = []
        self._lock = threading.Lock()

    def list_message_ids(self, token: Token) -> list[MessageStub]:
        if self.fail_listing:
            raise MailboxError("Failed to list messages: boom")
        return [MessageStub(message_id=i, thread_id=f"t-{i}") for i in self.ids]

    def get_headers(self, token: Token, message_id: str) -> HeaderDetail:
        if message_id in self.fail_headers:
            raise MailboxError(f"Failed to fetch headers of {message_id}")
        return HeaderDetail(
            message_id=message_id,
            snippet=f"snippet {message_id}",
            is_unread=message_id in self.unread,
            headers=(
                MessageHeader("From", f"{message_id}@example.com"),
                MessageHeader("Subject", f"Subject {message_id}"),
            ),
        )

    def get_full_message(self, token: Token, message_id: str) -> FullMessage:
        with self._lock:
            self.body_calls.append(message_id)
        if message_id in self.fail_bodies:
            raise MailboxError(f"Failed to fetch message {message_id}")
        text = self.bodies.get(message_id, f"Body of {message_id}")
        return FullMessage(
            message_id=message_id,
            snippet=f"snippet {message_id}",
            payload=MessagePayload(mime_type="text/plain", body_data=b64url(text)),
        )

    def mark_read(self, token: Token, message_id: str) -> None:
        with self._lock:
            self.mark_read_calls.append(message_id)
        if self.fail_mark_read:
            raise MailboxError(f"Failed to mark {message_id} as read")
        self.unread.discard(message_id)


@pytest.fixture
def token() -> Token:
    return Token(access_token="access-123", refresh_token="refresh-456")


@pytest.fixture
def mailbox() -> FakeMailbox:
    return FakeMailbox(["A", "B", "C"], unread={"A", "C"})


@pytest.fixture
def multipart_alt_raw() -> dict[str, Any]:
    """Raw Gmail API response for a multipart/alternative email."""
    return {
        "id": "msg_alt",
        "threadId": "thread_alt",
        "labelIds": ["INBOX", "UNREAD"],
        "snippet": "Hello",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [
                {"name": "From", "value": "Alice <alice@example.com>"},
                {"name": "Subject", "value": "Greetings"},
            ],
            "body": {"size": 0},
            "parts": [
                text_part("text/plain", "Hello"),
                text_part("text/html", "<b>Hi</b>"),
            ],
        },
    }


@pytest.fixture
def metadata_raw() -> dict[str, Any]:
    """Raw Gmail API response for format=metadata."""
    return {
        "id": "msg_meta",
        "threadId": "thread_meta",
        "labelIds": ["INBOX", "UNREAD", "CATEGORY_PERSONAL"],
        "snippet": "Quick question about the report",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": [
                {"name": "from", "value": "Bob <bob@example.com>"},
                {"name": "Subject", "value": "Report"},
            ],
        },
    }
