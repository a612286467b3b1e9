"""Curses projection of ViewState. Reads state, never changes it."""

from __future__ import annotations

import curses
import textwrap
from typing import Any

from gmail_tui.ui.state import ViewMode, ViewState

LIST_HELP = "j/k or arrows: move  enter: open  q: quit"
VIEW_HELP = "j/k or arrows: scroll  PgUp/PgDn: page  q/esc: back"
SENDER_WIDTH = 28


class CursesRenderer:
    """Draw the inbox table or the open message into a curses window."""

    def prepare(self, screen: Any) -> None:
        try:
            curses.curs_set(0)
        except curses.error:
            pass
        screen.keypad(True)

    def draw(self, screen: Any, state: ViewState) -> None:
        screen.erase()
        height, width = screen.getmaxyx()
        if height < 3 or width < 10:
            screen.refresh()
            return
        if state.mode is ViewMode.VIEWING:
            self._draw_message(screen, state, height, width)
        else:
            self._draw_list(screen, state, height, width)
        screen.refresh()

    def _draw_list(self, screen: Any, state: ViewState, height: int, width: int) -> None:
        status = "loading..." if state.is_loading else f"{len(state.emails)} messages"
        self._safe_addstr(screen, 0, 0, self._fit(f" Inbox  [{status}]", width), curses.A_BOLD)

        rows = height - 2
        if not state.emails:
            empty = "Fetching messages..." if state.is_loading else "No messages."
            self._safe_addstr(screen, 1, 0, self._fit(empty, width), curses.A_DIM)
        else:
            top = max(0, state.selected_index - rows + 1)
            for row, index in enumerate(range(top, min(top + rows, len(state.emails)))):
                email = state.emails[index]
                marker = "*" if email.is_unread else " "
                sender = self._fit(email.sender, SENDER_WIDTH).ljust(SENDER_WIDTH)
                subject = email.subject or "(no subject)"
                line = self._fit(f"{marker} {sender}  {subject}", width)
                attr = curses.A_REVERSE if index == state.selected_index else curses.A_NORMAL
                if email.is_unread:
                    attr |= curses.A_BOLD
                self._safe_addstr(screen, 1 + row, 0, line.ljust(width - 1), attr)

        self._safe_addstr(screen, height - 1, 0, self._fit(LIST_HELP, width), curses.A_DIM)

    def _draw_message(self, screen: Any, state: ViewState, height: int, width: int) -> None:
        email = state.selected
        sender = email.sender if email else ""
        subject = (email.subject if email else "") or "(no subject)"
        self._safe_addstr(screen, 0, 0, self._fit(f"From: {sender}", width), curses.A_BOLD)
        self._safe_addstr(screen, 1, 0, self._fit(f"Subject: {subject}", width), curses.A_BOLD)

        body_top = 3
        rows = max(0, height - body_top - 1)
        lines = self._wrap(state.current_body, width - 1)
        for row, line in enumerate(lines[state.scroll_offset:state.scroll_offset + rows]):
            self._safe_addstr(screen, body_top + row, 0, line)

        self._safe_addstr(screen, height - 1, 0, self._fit(VIEW_HELP, width), curses.A_DIM)

    @staticmethod
    def _wrap(text: str, width: int) -> list[str]:
        lines: list[str] = []
        for raw in text.splitlines():
            lines.extend(textwrap.wrap(raw, width) or [""])
        return lines

    @staticmethod
    def _fit(text: str, width: int) -> str:
        text = text.replace("\n", " ")
        if width <= 0:
            return ""
        if len(text) < width:
            return text
        return text[: max(0, width - 2)] + "~"

    @staticmethod
    def _safe_addstr(screen: Any, y: int, x: int, text: str, attr: int = 0) -> None:
        try:
            screen.addnstr(y, x, text, max(0, screen.getmaxyx()[1] - x - 1), attr)
        except curses.error:
            pass
