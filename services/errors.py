from __future__ import annotations


class AutoReplyError(Exception):
    """Base class for every failure the agent knows how to handle."""


class MissingCredentials(AutoReplyError):
    """No usable token bundle is stored yet."""


class AuthError(AutoReplyError):
    """The stored credentials were rejected or could not be refreshed."""


class ProviderError(AutoReplyError):
    """The mail provider refused a request."""


class TransientProviderError(ProviderError):
    """Network trouble, a timeout, throttling or a provider-side 5xx."""


class EncodingError(AutoReplyError):
    """A reply could not be turned into a sendable message."""


class ConfigError(AutoReplyError, ValueError):
    """Required configuration is missing or invalid."""
