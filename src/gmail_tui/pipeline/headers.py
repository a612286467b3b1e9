"""Header sync: list the inbox page, then fetch every message's headers concurrently."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from gmail_tui.core.channel import Channel
from gmail_tui.core.exceptions import ChannelClosed, GmailTuiError
from gmail_tui.core.gmail_client import MailboxApi
from gmail_tui.core.models import EmailSummary, SyncFailed, Token

logger = logging.getLogger(__name__)

HeaderMessage = EmailSummary | SyncFailed


class HeaderSyncProducer:
    """One-shot task: list -> fan-out header fetch -> ordered summaries on a channel.

    Fetches run concurrently, but summaries are sent in listing order. Failed
    header fetches are dropped. The channel is always closed at the end, which
    is how the consumer learns that loading is over.
    """

    def __init__(
        self,
        client: MailboxApi,
        token: Token,
        channel: Channel[HeaderMessage],
        *,
        max_workers: int = 50,
        poll_interval: float = 0.1,
    ) -> None:
        self._client = client
        self._token = token
        self._channel = channel
        self._max_workers = max_workers
        self._poll_interval = poll_interval

    def start(self) -> threading.Thread:
        thread = threading.Thread(target=self.run, name="header-sync", daemon=True)
        thread.start()
        return thread

    def run(self) -> int:
        """Run one sync cycle. Returns the number of summaries sent."""
        sent = 0
        try:
            try:
                stubs = self._client.list_message_ids(self._token)
            except GmailTuiError as e:
                logger.error("Listing messages failed: %s", e)
                self._channel.send(SyncFailed(str(e)))
                return 0

            logger.info("Fetching headers for %d messages", len(stubs))
            if not stubs:
                return 0

            workers = max(1, min(self._max_workers, len(stubs)))
            pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="headers")
            try:
                futures: list[Future[EmailSummary | None]] = [
                    pool.submit(self._fetch_summary, stub.message_id) for stub in stubs
                ]
                # Consume in listing order, not completion order.
                for future in futures:
                    summary = self._wait_for(future)
                    if summary is None:
                        continue
                    self._channel.send(summary)
                    sent += 1
            finally:
                pool.shutdown(wait=False, cancel_futures=True)
        except ChannelClosed:
            logger.debug("Header channel closed by consumer after %d summaries", sent)
        finally:
            self._channel.close()

        logger.info("Header sync complete: %d summaries", sent)
        return sent

    def _wait_for(self, future: Future[EmailSummary | None]) -> EmailSummary | None:
        """Wait for one fetch, giving up as soon as the consumer closes the channel."""
        while True:
            if self._channel.closed:
                raise ChannelClosed("header channel closed while fetching")
            try:
                return future.result(timeout=self._poll_interval)
            except TimeoutError:
                continue

    def _fetch_summary(self, message_id: str) -> EmailSummary | None:
        if self._channel.closed:
            return None
        try:
            detail = self._client.get_headers(self._token, message_id)
            return EmailSummary.from_detail(detail)
        except GmailTuiError as e:
            logger.warning("Dropping message %s, header fetch failed: %s", message_id, e)
        except Exception:
            logger.exception("Dropping message %s, unexpected error", message_id)
        return None
