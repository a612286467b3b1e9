"""Custom exceptions for Gmail TUI."""


class GmailTuiError(Exception):
    """Base exception for all Gmail TUI errors."""


class AuthenticationError(GmailTuiError):
    """Failed to authenticate with Gmail API."""


class MailboxError(GmailTuiError):
    """A Gmail API call failed."""


class RateLimitError(MailboxError):
    """Gmail API rate limit exceeded."""


class ChannelError(GmailTuiError):
    """Base exception for channel operations."""


class ChannelClosed(ChannelError):
    """The channel was closed and holds no more items."""


class ChannelFull(ChannelError):
    """The channel is at capacity."""


class ChannelEmpty(ChannelError):
    """The channel is open but has nothing to receive right now."""
