"""Session wiring: credentials -> client -> channels -> background tasks -> UI."""

from __future__ import annotations

import curses
import logging

from gmail_tui.config.settings import GmailTuiSettings
from gmail_tui.core.auth import build_gmail_service, get_token
from gmail_tui.core.channel import Channel
from gmail_tui.core.exceptions import MailboxError
from gmail_tui.core.gmail_client import GmailClient, MailboxApi
from gmail_tui.core.models import BodyRequest, BodyResult, MarkReadResult, Token
from gmail_tui.pipeline.headers import HeaderMessage, HeaderSyncProducer
from gmail_tui.pipeline.workers import BodyFetchWorker, MarkReadWorker
from gmail_tui.ui.loop import RenderLoop
from gmail_tui.ui.renderer import CursesRenderer
from gmail_tui.ui.state import ViewStateMachine

logger = logging.getLogger(__name__)


class MailboxSession:
    """One interactive inbox session.

    Background tasks:
    - HeaderSyncProducer: list the inbox page and stream summaries
    - BodyFetchWorker:    fetch and decode the selected message body
    - MarkReadWorker:     clear the UNREAD label after a message was read
    """

    def __init__(
        self,
        settings: GmailTuiSettings | None = None,
        *,
        client: MailboxApi | None = None,
        token: Token | None = None,
    ) -> None:
        self._settings = settings or GmailTuiSettings()
        self._client = client
        self._token = token
        self._machine: ViewStateMachine | None = None

    @property
    def machine(self) -> ViewStateMachine | None:
        return self._machine

    def _ensure_initialized(self) -> tuple[MailboxApi, Token]:
        """Acquire the token and build the client if not already done.

        Raises:
            AuthenticationError: If no token can be obtained.
        """
        if self._token is None:
            self._token = get_token(self._settings.credentials_path, self._settings.token_path)

        if self._client is None:
            service = build_gmail_service(self._token)
            self._client = GmailClient(
                service,
                page_size=self._settings.page_size,
                list_query=self._settings.list_query,
                max_retries=self._settings.max_retries,
                initial_backoff_seconds=self._settings.initial_backoff_seconds,
                max_backoff_seconds=self._settings.max_backoff_seconds,
                num_retries=self._settings.num_retries,
                http_timeout_seconds=self._settings.http_timeout_seconds,
            )

        return self._client, self._token

    def start(self) -> ViewStateMachine:
        """Create the channels, spawn the background tasks, and return the state machine."""
        client, token = self._ensure_initialized()
        s = self._settings

        headers: Channel[HeaderMessage] = Channel(s.header_channel_capacity)
        body_requests: Channel[BodyRequest] = Channel(s.body_request_capacity)
        body_results: Channel[BodyResult] = Channel(s.body_result_capacity)
        read_requests: Channel[str] = Channel(s.mark_read_capacity)
        read_results: Channel[MarkReadResult] = Channel(s.mark_read_capacity)

        HeaderSyncProducer(
            client, token, headers, max_workers=s.header_fetch_workers
        ).start()
        BodyFetchWorker(
            client, token, body_requests, body_results, html_width=s.html_width
        ).start()
        MarkReadWorker(client, token, read_requests, read_results).start()
        logger.info("Session started")

        self._machine = ViewStateMachine(
            headers, body_requests, body_results, read_requests, read_results
        )
        return self._machine

    def run(self) -> None:
        """Run the interactive session until the user quits.

        Raises:
            AuthenticationError: If credentials cannot be obtained.
            MailboxError: If the inbox listing failed.
        """
        machine = self.start()
        loop = RenderLoop(
            machine, CursesRenderer(), poll_interval_ms=self._settings.poll_interval_ms
        )
        try:
            curses.wrapper(loop.run)
        finally:
            machine.shutdown()

        if machine.state.error is not None:
            raise MailboxError(f"Could not list inbox: {machine.state.error}")
