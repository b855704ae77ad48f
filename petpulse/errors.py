from __future__ import annotations


class TriageError(Exception):
    """Base error for the triage pipeline; carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(TriageError):
    """Missing or invalid caller input. Always surfaced, never healed."""

    status_code = 400


class UpstreamUnavailable(TriageError):
    """The generative service could not be reached or rejected the call."""

    status_code = 503


class MalformedOutput(TriageError):
    """The generative service answered with something that is not the requested shape."""

    status_code = 502
