from abc import ABC, abstractmethod

from rendering.models import RenderedDocument


class RenderError(Exception):
    """Base rendering exception."""

    def __init__(self, url: str, message: str = ""):
        self.url = url
        super().__init__(message or url)


class TransientFetchError(RenderError):
    """Failure worth one more attempt (timeouts, navigation and connection errors)."""
    pass


class RenderTimeoutError(TransientFetchError):
    """Raised when navigation exceeds the per-request timeout."""
    pass


class NavigationError(TransientFetchError):
    """Raised when the page could not be loaded (DNS, TLS, connection reset, ...)."""
    pass


class InvalidUrlError(RenderError):
    """Raised when the URL cannot be navigated to at all. Never retried."""
    pass


class RenderingBackend(ABC):
    """
    Abstraction for the component that turns a URL into a loaded document.
    Contractual Requirements for Implementers:
    - MUST bound every call by the timeout given (seconds).
    - MUST release the page/connection used by a call, also on failure.
    - MUST raise RenderTimeoutError, NavigationError or InvalidUrlError, nothing else.
    - MUST be safe to call from several worker threads at once.
    """

    @abstractmethod
    def render(self, url: str, timeout: float) -> RenderedDocument:
        """
        Load the URL and return a DOM snapshot.
        """
        pass

    def close(self) -> None:
        """Release browsers, sessions, threads."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
