"""Identity signal — who the active cart belongs to.

Authentication itself lives outside this engine; it only publishes
transitions here. Listeners are awaited in subscription order, so a
transition is fully handled (e.g. the cart merged) before ``publish``
returns.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """Anonymous device session or an authenticated user."""

    user_id: str | None = None
    email: str | None = None

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls()

    @classmethod
    def authenticated(cls, user_id: str, email: str | None = None) -> "Identity":
        if not user_id:
            raise ValueError("An authenticated identity needs a user_id")
        return cls(user_id=str(user_id), email=email)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def owner_key(self) -> str:
        """Stable key for per-owner bookkeeping (locks, caches)."""
        return f"user:{self.user_id}" if self.is_authenticated else "anonymous"


ANONYMOUS = Identity.anonymous()

IdentityListener = Callable[[Identity, Identity], Awaitable[None]]


class IdentitySignal:
    """Current identity plus the transitions between identities."""

    def __init__(self, initial: Identity = ANONYMOUS) -> None:
        self._current = initial
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> Identity:
        return self._current

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, identity: Identity) -> None:
        """Record a new identity and notify listeners of the transition."""
        previous = self._current
        self._current = identity
        logger.info(
            "Identity changed",
            previous_user_id=previous.user_id,
            user_id=identity.user_id,
        )
        for listener in list(self._listeners):
            await listener(previous, identity)

    async def sign_in(self, user_id: str, email: str | None = None) -> None:
        await self.publish(Identity.authenticated(user_id, email))

    async def sign_out(self) -> None:
        await self.publish(ANONYMOUS)
