"""Tests for ViewStateMachine transitions."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from gmail_tui.core.channel import Channel
from gmail_tui.core.exceptions import ChannelEmpty
from gmail_tui.core.models import (
    BodyRequest,
    BodyResult,
    EmailSummary,
    MarkReadResult,
    SyncFailed,
)
from gmail_tui.pipeline.headers import HeaderMessage
from gmail_tui.ui.state import (
    LOADING_PLACEHOLDER,
    PAGE_SCROLL,
    Intent,
    ViewMode,
    ViewStateMachine,
)


@dataclass
class Wiring:
    headers: Channel[HeaderMessage]
    body_requests: Channel[BodyRequest]
    body_results: Channel[BodyResult]
    read_requests: Channel[str]
    read_results: Channel[MarkReadResult]
    machine: ViewStateMachine

    def requests(self, channel: Channel) -> list:
        items = []
        while True:
            try:
                items.append(channel.try_recv())
            except ChannelEmpty:
                return items


def summary(message_id: str, unread: bool = False) -> EmailSummary:
    return EmailSummary(
        message_id=message_id,
        sender=f"{message_id}@example.com",
        subject=f"Subject {message_id}",
        is_unread=unread,
    )


def make_wiring(body_capacity: int = 10) -> Wiring:
    headers: Channel[HeaderMessage] = Channel(100)
    body_requests: Channel[BodyRequest] = Channel(body_capacity)
    body_results: Channel[BodyResult] = Channel(10)
    read_requests: Channel[str] = Channel(10)
    read_results: Channel[MarkReadResult] = Channel(10)
    machine = ViewStateMachine(headers, body_requests, body_results, read_requests, read_results)
    return Wiring(headers, body_requests, body_results, read_requests, read_results, machine)


@pytest.fixture
def wiring() -> Wiring:
    return make_wiring()


def loaded(wiring: Wiring, *emails: EmailSummary) -> ViewStateMachine:
    for email in emails:
        wiring.headers.try_send(email)
    wiring.headers.close()
    wiring.machine.drain()
    return wiring.machine


class TestInitialState:
    def test_starts_loading_in_list_mode(self, wiring: Wiring) -> None:
        state = wiring.machine.state
        assert state.mode is ViewMode.LIST
        assert state.is_loading is True
        assert state.emails == []
        assert state.selected_index == 0
        assert state.selected is None


class TestHeaderDraining:
    def test_appends_in_arrival_order(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("C"))
        assert [e.message_id for e in machine.state.emails] == ["A", "C"]

    def test_loading_stays_true_until_closed(self, wiring: Wiring) -> None:
        wiring.headers.try_send(summary("A"))
        wiring.machine.drain()
        assert wiring.machine.state.is_loading is True

        wiring.headers.close()
        wiring.machine.drain()
        assert wiring.machine.state.is_loading is False

    def test_first_header_prefetches_body(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("B"))

        assert machine.state.selected_index == 0
        assert machine.state.current_body == LOADING_PLACEHOLDER
        assert wiring.requests(wiring.body_requests) == [BodyRequest(1, "A")]

    def test_sync_failure_is_recorded(self, wiring: Wiring) -> None:
        wiring.headers.try_send(SyncFailed("Failed to list messages: 401"))
        wiring.headers.close()
        wiring.machine.drain()

        assert wiring.machine.state.error == "Failed to list messages: 401"
        assert wiring.machine.state.is_loading is False


class TestNavigation:
    def test_down_wraps_on_two_items(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("B"))
        seen = []
        for _ in range(3):
            machine.handle(Intent.DOWN)
            seen.append(machine.state.selected_index)
        assert seen == [1, 0, 1]

    def test_previous_from_zero_goes_to_last(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("B"), summary("C"))
        machine.previous()
        assert machine.state.selected_index == 2

    def test_next_from_last_goes_to_zero(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("B"), summary("C"))
        machine.previous()
        machine.next()
        assert machine.state.selected_index == 0

    def test_navigation_noop_on_empty_list(self, wiring: Wiring) -> None:
        machine = loaded(wiring)
        machine.next()
        machine.previous()
        assert machine.state.selected_index == 0
        assert wiring.requests(wiring.body_requests) == []

    def test_selection_change_resets_scroll_and_requests_body(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("B"))
        wiring.requests(wiring.body_requests)
        machine.state.scroll_offset = 7

        machine.next()

        assert machine.state.scroll_offset == 0
        assert machine.state.current_body == LOADING_PLACEHOLDER
        assert wiring.requests(wiring.body_requests) == [BodyRequest(2, "B")]

    def test_same_message_with_loaded_body_is_not_refetched(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        wiring.requests(wiring.body_requests)
        machine.apply_body_result(BodyResult(1, "A", body="hello"))

        machine.next()

        assert machine.state.current_body == "hello"
        assert wiring.requests(wiring.body_requests) == []

    def test_same_message_after_failure_is_refetched(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        wiring.requests(wiring.body_requests)
        machine.apply_body_result(BodyResult(1, "A", error="timeout"))

        machine.next()

        assert wiring.requests(wiring.body_requests) == [BodyRequest(2, "A")]

    def test_quit_in_list_mode_ends_session(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        assert machine.handle(Intent.QUIT) is False


class TestBodyResults:
    def test_current_result_is_shown(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        wiring.body_results.try_send(BodyResult(1, "A", body="Hello"))

        machine.drain()

        assert machine.state.current_body == "Hello"

    def test_stale_result_is_dropped(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"), summary("B"))
        machine.next()  # generation 2 for B
        wiring.body_results.try_send(BodyResult(1, "A", body="old A"))

        machine.drain()

        assert machine.state.current_body == LOADING_PLACEHOLDER

        wiring.body_results.try_send(BodyResult(2, "B", body="fresh B"))
        machine.drain()
        assert machine.state.current_body == "fresh B"

    def test_failure_replaces_placeholder(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))

        used = machine.apply_body_result(BodyResult(1, "A", error="HTTP 500"))

        assert used is True
        assert machine.state.current_body == "Failed to load message: HTTP 500"


class TestBackpressure:
    def test_full_request_channel_does_not_block(self) -> None:
        wiring = make_wiring(body_capacity=1)
        machine = loaded(wiring, summary("A"), summary("B"), summary("C"))

        # Channel holds A's request; the next two cannot be sent.
        machine.next()
        machine.next()

        assert machine.state.selected_index == 2
        assert machine.state.current_body == LOADING_PLACEHOLDER

    def test_unsent_request_is_retried_once_there_is_room(self) -> None:
        wiring = make_wiring(body_capacity=1)
        machine = loaded(wiring, summary("A"), summary("B"), summary("C"))
        machine.next()
        machine.next()

        assert wiring.body_requests.try_recv() == BodyRequest(1, "A")
        machine.drain()

        assert wiring.body_requests.try_recv() == BodyRequest(3, "C")

    def test_closed_request_channel_shows_error(self, wiring: Wiring) -> None:
        wiring.body_requests.close()
        machine = loaded(wiring, summary("A"))

        assert machine.state.current_body.startswith("Failed to load message")


class TestViewing:
    def test_confirm_enters_viewing(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        machine.handle(Intent.CONFIRM)
        assert machine.state.mode is ViewMode.VIEWING

    def test_confirm_on_empty_list_stays_in_list(self, wiring: Wiring) -> None:
        machine = loaded(wiring)
        machine.handle(Intent.CONFIRM)
        assert machine.state.mode is ViewMode.LIST

    def test_scroll_saturates_at_zero(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        machine.handle(Intent.CONFIRM)

        machine.handle(Intent.DOWN)
        machine.handle(Intent.DOWN)
        machine.handle(Intent.UP)
        machine.handle(Intent.UP)
        machine.handle(Intent.UP)

        assert machine.state.scroll_offset == 0

    def test_page_scroll(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        machine.handle(Intent.CONFIRM)

        machine.handle(Intent.PAGE_DOWN)
        machine.handle(Intent.PAGE_DOWN)
        machine.handle(Intent.PAGE_UP)

        assert machine.state.scroll_offset == PAGE_SCROLL

    def test_quit_in_viewing_goes_back_to_list(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        machine.handle(Intent.CONFIRM)

        assert machine.handle(Intent.QUIT) is True
        assert machine.state.mode is ViewMode.LIST


class TestMarkRead:
    def test_back_on_unread_sends_request(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A", unread=True))
        machine.handle(Intent.CONFIRM)
        machine.handle(Intent.BACK)

        assert wiring.requests(wiring.read_requests) == ["A"]

    def test_back_on_read_message_sends_nothing(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))
        machine.handle(Intent.CONFIRM)
        machine.handle(Intent.BACK)

        assert wiring.requests(wiring.read_requests) == []

    def test_pending_request_is_not_duplicated(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A", unread=True))
        for _ in range(2):
            machine.handle(Intent.CONFIRM)
            machine.handle(Intent.BACK)

        assert wiring.requests(wiring.read_requests) == ["A"]

    def test_success_flips_unread(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A", unread=True))
        machine.back()
        wiring.read_results.try_send(MarkReadResult("A", success=True))

        machine.drain()

        assert machine.state.emails[0].is_unread is False

    def test_failure_leaves_flag_and_allows_retry(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A", unread=True))
        machine.back()
        wiring.requests(wiring.read_requests)

        machine.apply_mark_read_result(MarkReadResult("A", success=False))
        assert machine.state.emails[0].is_unread is True

        machine.back()
        assert wiring.requests(wiring.read_requests) == ["A"]

    def test_repeated_success_keeps_read(self, wiring: Wiring) -> None:
        machine = loaded(wiring, summary("A"))

        machine.apply_mark_read_result(MarkReadResult("A", success=True))
        machine.apply_mark_read_result(MarkReadResult("A", success=True))

        assert machine.state.emails[0].is_unread is False


class TestShutdown:
    def test_closes_all_channels(self, wiring: Wiring) -> None:
        wiring.machine.shutdown()
        for channel in (
            wiring.headers,
            wiring.body_requests,
            wiring.body_results,
            wiring.read_requests,
            wiring.read_results,
        ):
            assert channel.closed
