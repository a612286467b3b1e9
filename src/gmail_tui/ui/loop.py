"""Render/input loop: drain, draw, poll a key, repeat. Never touches the network."""

from __future__ import annotations

import curses
import logging
from typing import Any, Protocol

from gmail_tui.ui.state import Intent, ViewState, ViewStateMachine

logger = logging.getLogger(__name__)

ESCAPE = 27

KEY_INTENTS: dict[int, Intent] = {
    curses.KEY_UP: Intent.UP,
    ord("k"): Intent.UP,
    curses.KEY_DOWN: Intent.DOWN,
    ord("j"): Intent.DOWN,
    curses.KEY_PPAGE: Intent.PAGE_UP,
    curses.KEY_NPAGE: Intent.PAGE_DOWN,
    curses.KEY_ENTER: Intent.CONFIRM,
    10: Intent.CONFIRM,
    13: Intent.CONFIRM,
    ESCAPE: Intent.BACK,
    ord("q"): Intent.QUIT,
    ord("Q"): Intent.QUIT,
}


class Renderer(Protocol):
    def prepare(self, screen: Any) -> None: ...

    def draw(self, screen: Any, state: ViewState) -> None: ...


def key_to_intent(key: int) -> Intent | None:
    return KEY_INTENTS.get(key)


class RenderLoop:
    """Single-threaded driver around a ViewStateMachine."""

    def __init__(
        self,
        machine: ViewStateMachine,
        renderer: Renderer,
        *,
        poll_interval_ms: int = 50,
    ) -> None:
        self._machine = machine
        self._renderer = renderer
        self._poll_interval_ms = poll_interval_ms

    def run(self, screen: Any) -> None:
        """Loop until the user quits or the inbox listing fails."""
        self._renderer.prepare(screen)
        screen.timeout(self._poll_interval_ms)
        frames = 0

        while True:
            self._machine.drain()
            if self._machine.state.error is not None:
                logger.error("Stopping: %s", self._machine.state.error)
                break

            self._renderer.draw(screen, self._machine.state)
            frames += 1

            key = screen.getch()
            if key == -1:
                continue
            intent = key_to_intent(key)
            if intent is None:
                continue
            if not self._machine.handle(intent):
                break

        logger.debug("Render loop finished after %d frames", frames)
