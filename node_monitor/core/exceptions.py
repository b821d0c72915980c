"""
Exception hierarchy for the node monitor
"""


class NodeMonitorError(Exception):
    """Base class for all node monitor errors."""


class ConfigurationError(NodeMonitorError):
    """A required setting is missing or invalid. Fatal for the invocation."""


class LivenessSourceError(NodeMonitorError):
    """The node list could not be fetched or parsed. Fatal for the cycle."""


class TokenExchangeError(LivenessSourceError):
    """The OAuth client-credentials exchange failed."""


class StoreError(NodeMonitorError):
    """A key-value store read, write or decode failed."""
