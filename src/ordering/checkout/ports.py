"""UI-side ports the checkout orchestrator drives: browser and navigation."""

from abc import ABC, abstractmethod


class BrowserUnavailable(Exception):
    """The external browsing session could not be opened."""


class ExternalBrowser(ABC):
    """Opens the payment provider's hosted page."""

    @abstractmethod
    async def open(self, url: str, return_url: str) -> str | None:
        """Open ``url`` in an authenticated browsing session.

        Returns the URL the session came back through when the platform
        reports it directly, or None when the return will arrive later as a
        deep link.
        """
        ...


class Navigator(ABC):
    """Screen navigation the orchestrator can request."""

    @abstractmethod
    def to_sign_in(self) -> None: ...

    @abstractmethod
    def to_order(self, order_id: str) -> None: ...


class FakeBrowser(ExternalBrowser):
    """Browser that records opened URLs; optionally returns a callback URL."""

    def __init__(self, returns: str | None = None, available: bool = True) -> None:
        self.opened: list[tuple[str, str]] = []
        self.returns = returns
        self.available = available

    async def open(self, url: str, return_url: str) -> str | None:
        if not self.available:
            raise BrowserUnavailable("No browser available")
        self.opened.append((url, return_url))
        return self.returns


class FakeNavigator(Navigator):
    """Navigator that records requested routes."""

    def __init__(self) -> None:
        self.routes: list[str] = []

    def to_sign_in(self) -> None:
        self.routes.append("/auth/sign-in")

    def to_order(self, order_id: str) -> None:
        self.routes.append(f"/order/{order_id}")

    @property
    def current(self) -> str | None:
        return self.routes[-1] if self.routes else None
