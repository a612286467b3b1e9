"""MIME body decoder: pick the displayable text out of a Gmail payload tree."""

from __future__ import annotations

import base64
import binascii
import logging
import re

import html2text

from gmail_tui.core.models import MessagePayload

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 80

_BASE64URL = re.compile(r"[A-Za-z0-9_-]*")


def decode_body(payload: MessagePayload | None, snippet: str, width: int = DEFAULT_WIDTH) -> str:
    """Return the text to display for a message.

    Preference: first text/plain part verbatim, else the first text/html part
    rendered to ``width`` columns, else the snippet. Parts whose data cannot
    be decoded count as missing.
    """
    if payload is not None:
        plain, html = find_body_parts(payload)
        if plain is not None:
            return plain
        if html is not None:
            return html_to_text(html, width)
    return snippet


def find_body_parts(payload: MessagePayload) -> tuple[str | None, str | None]:
    """Walk the tree pre-order and return the first (plain, html) candidates found.

    A candidate found at a node or an earlier sibling is never replaced by
    one found later in the walk.
    """
    plain_text: str | None = None
    html: str | None = None

    if payload.mime_type == "text/plain":
        plain_text = _decode_data(payload.body_data)
    elif payload.mime_type == "text/html":
        html = _decode_data(payload.body_data)

    for part in payload.parts:
        part_plain, part_html = find_body_parts(part)
        if plain_text is None:
            plain_text = part_plain
        if html is None:
            html = part_html

    return plain_text, html


def html_to_text(html: str, width: int = DEFAULT_WIDTH) -> str:
    """Render HTML as wrapped plain text."""
    converter = html2text.HTML2Text(bodywidth=width)
    converter.ignore_images = True
    return converter.handle(html)


def _decode_data(data: str | None) -> str | None:
    """Decode Gmail's unpadded base64url data to UTF-8, or None if it is not valid."""
    if data is None:
        return None
    unpadded = data.rstrip("=")
    if not _BASE64URL.fullmatch(unpadded):
        logger.debug("Discarding body part with non-base64url characters")
        return None
    padded = unpadded + "=" * (-len(unpadded) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
        return raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        logger.debug("Discarding undecodable body part: %s", e)
        return None
