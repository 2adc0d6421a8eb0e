"""Notification sink port — short user-facing messages (toasts).

The UI supplies the real sink. ``FakeNotificationSink`` records notices for
test assertions and ``LoggingNotificationSink`` is used when no UI is
attached.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from shared.logging import get_logger

logger = get_logger(__name__)


class NoticeKind(Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Notice:
    message: str
    kind: NoticeKind = NoticeKind.INFO
    data: dict = field(default_factory=dict)


class NotificationSink(ABC):
    """Abstract interface for user-facing notifications."""

    @abstractmethod
    def notify(self, notice: Notice) -> None:
        """Show a notice to the user."""
        ...

    def success(self, message: str, **data) -> None:
        self.notify(Notice(message=message, kind=NoticeKind.SUCCESS, data=data))

    def error(self, message: str, **data) -> None:
        self.notify(Notice(message=message, kind=NoticeKind.ERROR, data=data))

    def info(self, message: str, **data) -> None:
        self.notify(Notice(message=message, kind=NoticeKind.INFO, data=data))


class LoggingNotificationSink(NotificationSink):
    """Writes notices to the log instead of a screen."""

    def notify(self, notice: Notice) -> None:
        logger.info("User notice", kind=notice.kind.value, message=notice.message, **notice.data)


class FakeNotificationSink(NotificationSink):
    """Sink that records notices in memory for test assertions."""

    def __init__(self) -> None:
        self.notices: list[Notice] = []

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)

    def of_kind(self, kind: NoticeKind) -> list[Notice]:
        return [n for n in self.notices if n.kind == kind]

    @property
    def last(self) -> Notice | None:
        return self.notices[-1] if self.notices else None

    def reset(self) -> None:
        """Clear recorded notices (useful between tests)."""
        self.notices.clear()
