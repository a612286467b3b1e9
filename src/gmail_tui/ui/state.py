"""View state and the transitions driven by key intents and channel messages.

All mutation happens on the render/input thread. Background tasks are only
reached through channels, and every channel call made here is non-blocking.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field

from gmail_tui.core.channel import Channel
from gmail_tui.core.exceptions import ChannelClosed, ChannelEmpty, ChannelFull
from gmail_tui.core.models import (
    BodyRequest,
    BodyResult,
    EmailSummary,
    MarkReadResult,
    SyncFailed,
)
from gmail_tui.pipeline.headers import HeaderMessage

logger = logging.getLogger(__name__)

LOADING_PLACEHOLDER = "Loading..."
PAGE_SCROLL = 10
MAX_DRAIN = 100


class ViewMode(enum.Enum):
    LIST = "list"
    VIEWING = "viewing"


class Intent(enum.Enum):
    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    CONFIRM = "confirm"
    BACK = "back"
    QUIT = "quit"


@dataclass
class ViewState:
    """Everything the renderer needs to draw a frame."""

    mode: ViewMode = ViewMode.LIST
    is_loading: bool = True
    emails: list[EmailSummary] = field(default_factory=list)
    selected_index: int = 0
    current_body: str = ""
    scroll_offset: int = 0
    error: str | None = None

    @property
    def selected(self) -> EmailSummary | None:
        if not self.emails:
            return None
        return self.emails[self.selected_index]


class ViewStateMachine:
    """Owns ViewState and applies intents and incoming results to it."""

    def __init__(
        self,
        headers: Channel[HeaderMessage],
        body_requests: Channel[BodyRequest],
        body_results: Channel[BodyResult],
        read_requests: Channel[str] | None = None,
        read_results: Channel[MarkReadResult] | None = None,
    ) -> None:
        self.state = ViewState()
        self._headers = headers
        self._body_requests = body_requests
        self._body_results = body_results
        self._read_requests = read_requests
        self._read_results = read_results

        self._generation = 0
        self._body_message_id: str | None = None
        self._body_loaded = False
        self._body_in_flight = False
        self._unsent_request: BodyRequest | None = None
        self._pending_reads: set[str] = set()

    @property
    def generation(self) -> int:
        """Id of the latest body request issued."""
        return self._generation

    # -------------------------------------------------------------------------
    # Intents
    # -------------------------------------------------------------------------

    def handle(self, intent: Intent) -> bool:
        """Apply an intent. Returns False when the session should end."""
        if self.state.mode is ViewMode.LIST:
            if intent is Intent.QUIT:
                return False
            if intent is Intent.UP:
                self.previous()
            elif intent is Intent.DOWN:
                self.next()
            elif intent is Intent.CONFIRM:
                self.confirm()
        else:
            if intent in (Intent.QUIT, Intent.BACK):
                self.back()
            elif intent is Intent.UP:
                self.scroll_up()
            elif intent is Intent.DOWN:
                self.scroll_down()
            elif intent is Intent.PAGE_UP:
                self.scroll_up(PAGE_SCROLL)
            elif intent is Intent.PAGE_DOWN:
                self.scroll_down(PAGE_SCROLL)
        return True

    def next(self) -> None:
        count = len(self.state.emails)
        if count == 0:
            return
        self._select((self.state.selected_index + 1) % count)

    def previous(self) -> None:
        count = len(self.state.emails)
        if count == 0:
            return
        self._select((self.state.selected_index - 1) % count)

    def confirm(self) -> None:
        if self.state.emails:
            self.state.mode = ViewMode.VIEWING

    def back(self) -> None:
        self.state.mode = ViewMode.LIST
        email = self.state.selected
        if email is not None and email.is_unread:
            self._request_mark_read(email.message_id)

    def scroll_down(self, lines: int = 1) -> None:
        self.state.scroll_offset += lines

    def scroll_up(self, lines: int = 1) -> None:
        self.state.scroll_offset = max(0, self.state.scroll_offset - lines)

    # -------------------------------------------------------------------------
    # Incoming messages
    # -------------------------------------------------------------------------

    def drain(self) -> None:
        """Pull whatever the background tasks have produced. Never blocks."""
        self._drain_headers()
        self._drain_body_results()
        self._drain_read_results()
        if self._unsent_request is not None:
            self._offer(self._unsent_request)

    def apply_header(self, message: HeaderMessage) -> None:
        if isinstance(message, SyncFailed):
            self.state.error = message.reason
            return
        self.state.emails.append(message)
        if len(self.state.emails) == 1:
            # Prefetch the first body so enter shows content right away.
            self._select(0)

    def apply_body_result(self, result: BodyResult) -> bool:
        """Show a body result if it answers the latest request. Returns whether it was used."""
        if result.generation != self._generation:
            logger.debug(
                "Dropping stale body for %s (generation %d, current %d)",
                result.message_id, result.generation, self._generation,
            )
            return False
        self._body_in_flight = False
        if result.ok:
            self.state.current_body = result.body or ""
            self._body_loaded = True
        else:
            self.state.current_body = f"Failed to load message: {result.error}"
            self._body_loaded = False
        return True

    def apply_mark_read_result(self, result: MarkReadResult) -> None:
        self._pending_reads.discard(result.message_id)
        if not result.success:
            return
        for email in self.state.emails:
            if email.message_id == result.message_id:
                email.is_unread = False

    def shutdown(self) -> None:
        """Close every channel so background tasks wind down."""
        channels = (
            self._headers,
            self._body_requests,
            self._body_results,
            self._read_requests,
            self._read_results,
        )
        for channel in channels:
            if channel is not None:
                channel.close()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _select(self, index: int) -> None:
        self.state.selected_index = index
        self.state.scroll_offset = 0
        email = self.state.emails[index]

        if email.message_id == self._body_message_id:
            if self._body_in_flight or (self._body_loaded and self.state.current_body):
                return

        self.state.current_body = LOADING_PLACEHOLDER
        self._request_body(email.message_id)

    def _request_body(self, message_id: str) -> None:
        self._generation += 1
        self._body_message_id = message_id
        self._body_loaded = False
        self._body_in_flight = False
        self._unsent_request = None
        self._offer(BodyRequest(self._generation, message_id))

    def _offer(self, request: BodyRequest) -> None:
        try:
            self._body_requests.try_send(request)
        except ChannelFull:
            logger.debug("Body request channel full, will retry %s", request.message_id)
            self._unsent_request = request
            return
        except ChannelClosed:
            logger.warning("Body worker is gone, cannot load %s", request.message_id)
            self._unsent_request = None
            self.state.current_body = "Failed to load message: body worker stopped"
            return
        self._unsent_request = None
        self._body_in_flight = True

    def _request_mark_read(self, message_id: str) -> None:
        if self._read_requests is None or message_id in self._pending_reads:
            return
        try:
            self._read_requests.try_send(message_id)
        except (ChannelFull, ChannelClosed) as e:
            logger.debug("Mark-read for %s not sent: %s", message_id, e)
            return
        self._pending_reads.add(message_id)

    def _drain_headers(self) -> None:
        if not self.state.is_loading:
            return
        for _ in range(MAX_DRAIN):
            try:
                message = self._headers.try_recv()
            except ChannelEmpty:
                return
            except ChannelClosed:
                self.state.is_loading = False
                return
            self.apply_header(message)

    def _drain_body_results(self) -> None:
        for _ in range(MAX_DRAIN):
            try:
                result = self._body_results.try_recv()
            except (ChannelEmpty, ChannelClosed):
                return
            self.apply_body_result(result)

    def _drain_read_results(self) -> None:
        if self._read_results is None:
            return
        for _ in range(MAX_DRAIN):
            try:
                result = self._read_results.try_recv()
            except (ChannelEmpty, ChannelClosed):
                return
            self.apply_mark_read_result(result)
