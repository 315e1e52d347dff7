from typing import Optional


class FetchError(Exception):
    """Base class for every error raised by creditmut-fetch."""


class CredentialsError(FetchError, ValueError):
    """A required credential was not provided. Raised before any network access."""


class RemoteError(FetchError):
    """
    The bank's website answered with an error, or could not be driven.

    Carries the HTTP status (when there was a response), the URL and a
    human-readable detail of what the remote side returned.
    """

    def __init__(self, message: str, status: Optional[int] = None,
                 url: Optional[str] = None, detail: str = ""):
        super().__init__(message)
        self.status = status
        self.url = url
        self.detail = detail

    @classmethod
    def from_response(cls, response, action: str) -> "RemoteError":
        return cls(
            f"Error while {action}: {response.detail}",
            status=response.status,
            url=response.url,
            detail=response.detail,
        )


class StatementParseError(FetchError, ValueError):
    """A statement export line does not have the fields the layout expects."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line
