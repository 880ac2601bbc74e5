"""Error taxonomy shared by the interview routes.

Every error carries a short public ``message`` and the HTTP ``status`` the
views answer with. Upstream detail goes to the server log, never into the
message.
"""

from typing import Optional


class InterviewError(Exception):
    status = 500
    message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class ValidationError(InterviewError):
    """Malformed caller input."""

    status = 400
    message = "Invalid request"


class UpstreamError(InterviewError):
    """An external service answered with a failure (or could not be reached)."""

    status = 500
    message = "Upstream service failed"


class UpstreamFormatError(UpstreamError):
    """An external service answered, but not in the expected JSON shape."""

    message = "Invalid upstream output"
