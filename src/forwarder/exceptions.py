"""Exception hierarchy for the forwarding orchestrator."""


class ForwardingError(Exception):
    """Base exception for forwarding errors.

    Messages are deliberately generic: they end up in client responses.
    Upstream detail is logged where the failure is handled.
    """


class ForwardingFailed(ForwardingError):
    """Upstream delivery failed permanently or ran out of attempts."""

    def __init__(self, message: str = "failed to forward alert to alertmanager") -> None:
        super().__init__(message)


class ForwardingCancelled(ForwardingError):
    """The request deadline expired before delivery completed."""

    def __init__(self, message: str = "forwarding cancelled before completion") -> None:
        super().__init__(message)
