"""Dataclasses for the Gmail TUI domain model and channel messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from google.oauth2.credentials import Credentials

UNREAD_LABEL = "UNREAD"


@dataclass(frozen=True)
class Token:
    """Access/refresh token pair, immutable for the whole session.

    The OAuth client fields travel with it so that credentials rebuilt from the
    token can refresh themselves once the access token expires.
    """

    access_token: str
    refresh_token: str | None = None
    client_id: str | None = None
    client_secret: str | None = field(default=None, repr=False)
    token_uri: str | None = None
    scopes: tuple[str, ...] = ()

    @classmethod
    def from_credentials(cls, creds: Credentials) -> Token:
        return cls(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            client_id=creds.client_id,
            client_secret=creds.client_secret,
            token_uri=creds.token_uri,
            scopes=tuple(creds.scopes or ()),
        )

    @property
    def can_refresh(self) -> bool:
        return all((self.refresh_token, self.client_id, self.client_secret, self.token_uri))

    def to_credentials(self) -> Credentials:
        return Credentials(
            token=self.access_token,
            refresh_token=self.refresh_token,
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_uri=self.token_uri,
            scopes=list(self.scopes) or None,
        )


@dataclass(frozen=True)
class MessageStub:
    """Lightweight message reference from Gmail list API."""

    message_id: str
    thread_id: str


@dataclass(frozen=True)
class MessageHeader:
    name: str
    value: str


@dataclass(frozen=True)
class MessagePayload:
    """One node of a Gmail MIME payload tree."""

    mime_type: str
    body_data: str | None = None
    parts: tuple[MessagePayload, ...] = field(default_factory=tuple)
    headers: tuple[MessageHeader, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> MessagePayload:
        """Build a payload tree from the Gmail API ``payload`` dict."""
        return cls(
            mime_type=raw.get("mimeType", ""),
            body_data=(raw.get("body") or {}).get("data"),
            parts=tuple(cls.from_dict(part) for part in raw.get("parts") or []),
            headers=_headers_from_list(raw.get("headers") or []),
        )


@dataclass(frozen=True)
class HeaderDetail:
    """Metadata-only view of a message (format=metadata)."""

    message_id: str
    snippet: str = ""
    is_unread: bool = False
    headers: tuple[MessageHeader, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> HeaderDetail:
        payload = raw.get("payload") or {}
        return cls(
            message_id=raw["id"],
            snippet=raw.get("snippet", ""),
            is_unread=UNREAD_LABEL in (raw.get("labelIds") or []),
            headers=_headers_from_list(payload.get("headers") or []),
        )

    def header(self, name: str) -> str:
        """Return the first header value matching ``name`` case-insensitively, or ''."""
        wanted = name.lower()
        for h in self.headers:
            if h.name.lower() == wanted:
                return h.value
        return ""


@dataclass(frozen=True)
class FullMessage:
    """Full message representation (format=full)."""

    message_id: str
    snippet: str = ""
    payload: MessagePayload | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FullMessage:
        payload = raw.get("payload")
        return cls(
            message_id=raw["id"],
            snippet=raw.get("snippet", ""),
            payload=MessagePayload.from_dict(payload) if payload else None,
        )


@dataclass
class EmailSummary:
    """Per-message row of the list view. ``is_unread`` flips once mark-read succeeds."""

    message_id: str
    sender: str
    subject: str
    is_unread: bool
    snippet: str = ""

    @classmethod
    def from_detail(cls, detail: HeaderDetail) -> EmailSummary:
        return cls(
            message_id=detail.message_id,
            sender=detail.header("From"),
            subject=detail.header("Subject"),
            is_unread=detail.is_unread,
            snippet=detail.snippet,
        )


@dataclass(frozen=True)
class SyncFailed:
    """Sent by the header producer when the listing call fails."""

    reason: str


@dataclass(frozen=True)
class BodyRequest:
    generation: int
    message_id: str


@dataclass(frozen=True)
class BodyResult:
    """Answer to a BodyRequest. Exactly one of ``body`` or ``error`` is set."""

    generation: int
    message_id: str
    body: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class MarkReadResult:
    message_id: str
    success: bool


def _headers_from_list(raw_headers: list[dict[str, str]]) -> tuple[MessageHeader, ...]:
    return tuple(
        MessageHeader(name=h.get("name", ""), value=h.get("value", "")) for h in raw_headers
    )
