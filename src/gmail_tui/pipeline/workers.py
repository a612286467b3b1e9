"""Long-lived background workers serving one request at a time over channels."""

from __future__ import annotations

import logging
import threading
from typing import Generic, TypeVar

from gmail_tui.core.channel import Channel
from gmail_tui.core.decoder import DEFAULT_WIDTH, decode_body
from gmail_tui.core.exceptions import ChannelClosed, GmailTuiError
from gmail_tui.core.gmail_client import MailboxApi
from gmail_tui.core.models import BodyRequest, BodyResult, MarkReadResult, Token

logger = logging.getLogger(__name__)

Req = TypeVar("Req")
Res = TypeVar("Res")


class ChannelWorker(Generic[Req, Res]):
    """Receive a request, handle it, send the result; until either channel closes.

    Requests are processed sequentially, so results come out in request order.
    """

    name = "worker"

    def __init__(self, requests: Channel[Req], results: Channel[Res]) -> None:
        self._requests = requests
        self._results = results

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        thread.start()
        return thread

    def run(self) -> None:
        handled = 0
        try:
            while True:
                request = self._requests.recv()
                result = self.handle(request)
                self._results.send(result)
                handled += 1
        except ChannelClosed:
            logger.debug("%s stopping after %d requests", self.name, handled)
        finally:
            self._results.close()

    def handle(self, request: Req) -> Res:
        raise NotImplementedError


class BodyFetchWorker(ChannelWorker[BodyRequest, BodyResult]):
    """Fetch and decode message bodies. Always answers, with an error on failure."""

    name = "body-fetch"

    def __init__(
        self,
        client: MailboxApi,
        token: Token,
        requests: Channel[BodyRequest],
        results: Channel[BodyResult],
        *,
        html_width: int = DEFAULT_WIDTH,
    ) -> None:
        super().__init__(requests, results)
        self._client = client
        self._token = token
        self._html_width = html_width

    def handle(self, request: BodyRequest) -> BodyResult:
        try:
            message = self._client.get_full_message(self._token, request.message_id)
            body = decode_body(message.payload, message.snippet, self._html_width)
        except GmailTuiError as e:
            logger.warning("Body fetch failed for %s: %s", request.message_id, e)
            return BodyResult(request.generation, request.message_id, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error loading body of %s", request.message_id)
            return BodyResult(
                request.generation, request.message_id, error=f"Unexpected error: {e}"
            )

        logger.debug("Fetched body of %s (%d chars)", request.message_id, len(body))
        return BodyResult(request.generation, request.message_id, body=body)


class MarkReadWorker(ChannelWorker[str, MarkReadResult]):
    """Remove the UNREAD label off the render thread."""

    name = "mark-read"

    def __init__(
        self,
        client: MailboxApi,
        token: Token,
        requests: Channel[str],
        results: Channel[MarkReadResult],
    ) -> None:
        super().__init__(requests, results)
        self._client = client
        self._token = token

    def handle(self, request: str) -> MarkReadResult:
        try:
            self._client.mark_read(self._token, request)
        except GmailTuiError as e:
            logger.warning("Marking %s as read failed: %s", request, e)
            return MarkReadResult(request, success=False)
        except Exception:
            logger.exception("Unexpected error marking %s as read", request)
            return MarkReadResult(request, success=False)
        return MarkReadResult(request, success=True)
