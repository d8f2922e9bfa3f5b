class RelayError(RuntimeError):
    """Base error for relay application issues."""


class ForwardRuleError(RelayError):
    """Raised when a forward rule cannot be parsed."""


class UpstreamConnectError(RelayError):
    """Raised when the relay cannot reach its target."""
