class DigestError(Exception):
    """A base exception for the newsletter digest pipeline."""

    msg: str

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)

    def __str__(self) -> str:
        return self.msg


class ConfigurationError(DigestError):
    """An exception for missing or invalid configuration."""


class SearchBackendError(DigestError):
    """An exception for a search backend response that cannot be used."""

    def __init__(self, status: int, reason: str | None = None):
        self.status = status
        super().__init__(f"Invalid response: Status {status}" + (f" ({reason})" if reason else ""))


class FetchStatusError(DigestError):
    """An exception for a page fetch that returned an error status."""

    def __init__(self, url: str, status: int):
        self.url = url
        self.status = status
        super().__init__(f"HTTP error: {status}")


class ExtractionError(DigestError):
    """An exception for a page whose HTML could not be parsed."""

    def __init__(self, url: str, error: str):
        super().__init__(f"Could not extract content from {url}: {error}")


class CompletionError(DigestError):
    """An exception for a completion backend that returned something other than text."""


class StoreError(DigestError):
    """An exception for a result store failure."""


class MailError(DigestError):
    """An exception for a mail collaborator failure."""
