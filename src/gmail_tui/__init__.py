"""Gmail TUI - browse a Gmail inbox in the terminal without blocking on the network."""

__version__ = "0.1.0"

from gmail_tui.core.decoder import decode_body  # noqa: E402
from gmail_tui.core.models import (  # noqa: E402
    BodyRequest,
    BodyResult,
    EmailSummary,
    MessagePayload,
    Token,
)
from gmail_tui.pipeline.session import MailboxSession  # noqa: E402
from gmail_tui.ui.state import ViewMode, ViewState, ViewStateMachine  # noqa: E402

__all__ = [
    "BodyRequest",
    "BodyResult",
    "EmailSummary",
    "MailboxSession",
    "MessagePayload",
    "Token",
    "ViewMode",
    "ViewState",
    "ViewStateMachine",
    "__version__",
    "decode_body",
]
