"""Gmail API client for listing the inbox, fetching messages, and marking them read."""

from __future__ import annotations

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, Protocol

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError

from gmail_tui.core.exceptions import MailboxError, RateLimitError
from gmail_tui.core.models import UNREAD_LABEL, FullMessage, HeaderDetail, MessageStub, Token

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
DEFAULT_LIST_QUERY = "in:inbox category:primary newer_than:30d"
DEFAULT_HTTP_TIMEOUT = 30.0
METADATA_HEADERS = ["Subject", "From"]


class MailboxApi(Protocol):
    """The four mailbox operations the pipeline and UI depend on."""

    def list_message_ids(self, token: Token) -> list[MessageStub]: ...

    def get_headers(self, token: Token, message_id: str) -> HeaderDetail: ...

    def get_full_message(self, token: Token, message_id: str) -> FullMessage: ...

    def mark_read(self, token: Token, message_id: str) -> None: ...


def _is_rate_limit_error(exc: Exception) -> bool:
    """Check whether an exception represents a Gmail API 429 rate limit."""
    if isinstance(exc, HttpError) and exc.status_code == 429:
        return True
    error_str = str(exc)
    return "429" in error_str or "rateLimitExceeded" in error_str


def authorized_http(token: Token, timeout: float = DEFAULT_HTTP_TIMEOUT) -> AuthorizedHttp:
    """Fresh authorized transport. httplib2 is not thread-safe, so one per call.

    The socket timeout bounds every request, so a stalled connection cannot
    hold a worker thread forever.
    """
    return AuthorizedHttp(token.to_credentials(), http=httplib2.Http(timeout=timeout))


class GmailClient:
    """Thin wrapper around Gmail API implementing MailboxApi.

    Safe to call from several threads at once: every request gets its own
    http transport built from the caller's token.
    """

    def __init__(
        self,
        service: Resource,
        user_id: str = "me",
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        list_query: str = DEFAULT_LIST_QUERY,
        max_retries: int = 5,
        initial_backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 60.0,
        num_retries: int = 3,
        http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT,
        http_factory: Callable[[Token], Any] | None = None,
    ) -> None:
        self._service = service
        self._user_id = user_id
        self._page_size = page_size
        self._list_query = list_query
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff_seconds
        self._max_backoff = max_backoff_seconds
        self._num_retries = num_retries
        self._http_factory = http_factory or functools.partial(
            authorized_http, timeout=http_timeout_seconds
        )

    def _execute_with_retry(self, request: Any, token: Token, context: str) -> Any:
        """Execute a single API request with exponential backoff on 429 errors.

        Args:
            request: A googleapiclient HttpRequest object.
            token: Session token used to authorize the request.
            context: Description for log messages (e.g. "list messages").

        Returns:
            The API response dict.

        Raises:
            RateLimitError: When retries are exhausted on 429 errors.
            MailboxError: On non-rate-limit API errors.
        """
        backoff = self._initial_backoff

        for attempt in range(self._max_retries + 1):
            try:
                return request.execute(
                    http=self._http_factory(token), num_retries=self._num_retries
                )
            except Exception as e:
                if _is_rate_limit_error(e):
                    if attempt >= self._max_retries:
                        raise RateLimitError(
                            f"Rate limited during {context} after "
                            f"{self._max_retries} retries: {e}"
                        ) from e
                    sleep_time = min(backoff, self._max_backoff)
                    jitter = random.uniform(0, sleep_time)
                    logger.warning(
                        "Rate limited during %s (attempt %d/%d), sleeping %.2fs",
                        context, attempt + 1, self._max_retries, jitter,
                    )
                    time.sleep(jitter)
                    backoff = min(backoff * 2, self._max_backoff)
                else:
                    raise MailboxError(f"Failed to {context}: {e}") from e

        raise RateLimitError(f"Rate limited during {context} after {self._max_retries} retries")

    def list_message_ids(self, token: Token) -> list[MessageStub]:
        """List one page of inbox message ids under the fixed listing policy."""
        request = self._service.users().messages().list(
            userId=self._user_id,
            maxResults=self._page_size,
            q=self._list_query,
        )
        response = self._execute_with_retry(request, token, "list messages")
        messages = response.get("messages") or []
        stubs = [
            MessageStub(message_id=msg["id"], thread_id=msg.get("threadId", ""))
            for msg in messages
        ]
        logger.debug("Listed %d message IDs", len(stubs))
        return stubs

    def get_headers(self, token: Token, message_id: str) -> HeaderDetail:
        """Fetch From/Subject metadata for one message."""
        request = self._service.users().messages().get(
            userId=self._user_id,
            id=message_id,
            format="metadata",
            metadataHeaders=METADATA_HEADERS,
        )
        response = self._execute_with_retry(request, token, f"fetch headers of {message_id}")
        try:
            return HeaderDetail.from_dict(response)
        except (KeyError, TypeError, AttributeError) as e:
            raise MailboxError(f"Malformed metadata response for {message_id}: {e}") from e

    def get_full_message(self, token: Token, message_id: str) -> FullMessage:
        """Fetch the full MIME payload of one message."""
        request = self._service.users().messages().get(
            userId=self._user_id,
            id=message_id,
            format="full",
        )
        response = self._execute_with_retry(request, token, f"fetch message {message_id}")
        try:
            return FullMessage.from_dict(response)
        except (KeyError, TypeError, AttributeError) as e:
            raise MailboxError(f"Malformed message response for {message_id}: {e}") from e

    def mark_read(self, token: Token, message_id: str) -> None:
        """Remove the UNREAD label from a message."""
        request = self._service.users().messages().modify(
            userId=self._user_id,
            id=message_id,
            body={"removeLabelIds": [UNREAD_LABEL]},
        )
        self._execute_with_retry(request, token, f"mark {message_id} as read")
