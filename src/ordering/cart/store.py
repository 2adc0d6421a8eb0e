"""Cart store — the single source of truth for what is in the cart right now.

The store owns one backing at a time (local for an anonymous session,
remote for a signed-in user) and an in-memory snapshot of its lines that
screens read synchronously.

Every mutation is a read-modify-write against the backing followed by a
refresh of the snapshot:

    lock(owner, product) → read quantity → write/delete → unlock → refresh

Mutations of the same line are serialized with a per-(owner, product) lock,
so two quick taps on "+" always add two. Refreshes are numbered and a
result is only applied if nothing newer has been applied already and the
identity has not changed since it started.

While a sign-in merge is in flight ``is_merging`` is true; checkout waits
on ``wait_for_merge`` before it snapshots the lines.
"""

import asyncio
from collections.abc import Callable
from contextlib import asynccontextmanager
from decimal import Decimal

from ordering.cart.backing import CartBacking, LocalCartBacking, RemoteCartBacking
from ordering.cart.lines import CartLine
from ordering.utils.logging import logger
from shared.catalogue import ProductCatalog, ProductSnapshot
from shared.errors import CartPersistenceError, CartRefreshError
from shared.identity import ANONYMOUS, Identity
from shared.locks import KeyedLocks
from shared.notifications import NotificationSink
from shared.persistence import CartStorage

CartListener = Callable[[tuple[CartLine, ...]], None]


def _require_positive(delta: int) -> None:
    if not isinstance(delta, int) or delta < 1:
        raise ValueError(f"delta must be a positive integer, got {delta!r}")


class CartStore:
    def __init__(
        self,
        storage: CartStorage,
        catalog: ProductCatalog,
        notifier: NotificationSink,
        identity: Identity = ANONYMOUS,
    ) -> None:
        self._storage = storage
        self._catalog = catalog
        self._notifier = notifier
        self._backing = self._backing_for(identity)
        self._lines: tuple[CartLine, ...] = ()
        self._locks = KeyedLocks()
        self._listeners: list[CartListener] = []
        self._refresh_started = 0
        self._refresh_applied = 0
        self._merge_done = asyncio.Event()
        self._merge_done.set()

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    @property
    def identity(self) -> Identity:
        return self._backing.identity

    @property
    def is_remote(self) -> bool:
        return self._backing.is_remote

    def get_lines(self) -> tuple[CartLine, ...]:
        """Snapshot of the last successful fetch or mutation. Never blocks."""
        return self._lines

    def quantity_of(self, product_id: str) -> int:
        return next((line.quantity for line in self._lines if line.product_id == str(product_id)), 0)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """Call ``listener`` with the new snapshot after every applied refresh."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    async def add_or_increment(
        self,
        product: ProductSnapshot,
        delta: int = 1,
        *,
        user_initiated: bool = True,
    ) -> tuple[CartLine, ...]:
        """Add ``delta`` to a product's line, creating the line if needed."""
        _require_positive(delta)
        return await self._mutate(
            product.product_id,
            lambda current: current + delta,
            product=product,
            action="add",
            user_initiated=user_initiated,
        )

    async def decrement_or_remove(self, product_id: str, delta: int = 1) -> tuple[CartLine, ...]:
        """Subtract ``delta``; the line is removed when nothing is left."""
        _require_positive(delta)
        return await self._mutate(
            str(product_id),
            lambda current: current - delta if current else None,
            action="decrement",
        )

    async def set_quantity(self, product_id: str, quantity: int) -> tuple[CartLine, ...]:
        """Set an absolute quantity on an existing line; ``<= 0`` removes it."""
        return await self._mutate(
            str(product_id),
            lambda current: quantity if current else None,
            action="set_quantity",
        )

    async def remove(self, product_id: str) -> tuple[CartLine, ...]:
        """Delete a line unconditionally."""
        return await self._mutate(str(product_id), lambda current: 0, action="remove", read_current=False)

    async def clear(self, *, user_initiated: bool = True) -> tuple[CartLine, ...]:
        """Delete every line of the active identity. Safe to repeat."""
        backing = self._backing
        try:
            await backing.delete_all()
        except CartPersistenceError as exc:
            self._report_failure("clear", backing.identity, None, exc, user_initiated)
            raise
        logger.info("Cart cleared", user_id=backing.identity.user_id)
        return await self._refresh_from(backing, user_initiated=user_initiated)

    async def refresh(self, silent: bool = False) -> tuple[CartLine, ...]:
        """Reload the snapshot from the backing.

        With ``silent=True`` a failed read is only logged and the last known
        snapshot is returned.
        """
        return await self._refresh_from(self._backing, silent=silent)

    # -------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------
    def switch_identity(self, identity: Identity) -> None:
        """Point the store at ``identity``'s cart.

        Switching to an anonymous identity starts a fresh, empty local cart
        and clears the snapshot at once. Switching to a signed-in identity
        leaves the snapshot in place until the next refresh.
        """
        if identity == self.identity:
            return
        self._backing = self._backing_for(identity)
        logger.info("Cart backing switched", user_id=identity.user_id, remote=self._backing.is_remote)
        if not identity.is_authenticated:
            self._apply(())

    @property
    def is_merging(self) -> bool:
        return not self._merge_done.is_set()

    @asynccontextmanager
    async def merging(self):
        """Mark a merge into the signed-in cart as in flight for the block."""
        self._merge_done.clear()
        try:
            yield
        finally:
            self._merge_done.set()

    async def wait_for_merge(self) -> None:
        """Return once no merge is in flight; immediately when none is."""
        await self._merge_done.wait()

    def _backing_for(self, identity: Identity) -> CartBacking:
        if identity.is_authenticated:
            return RemoteCartBacking(identity, self._storage, self._catalog)
        return LocalCartBacking(identity)

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    async def _mutate(
        self,
        product_id: str,
        compute: Callable[[int], int | None],
        *,
        action: str,
        product: ProductSnapshot | None = None,
        user_initiated: bool = True,
        read_current: bool = True,
    ) -> tuple[CartLine, ...]:
        backing = self._backing
        async with self._locks.hold((backing.identity.owner_key, product_id)):
            try:
                current = await backing.current_quantity(product_id) if read_current else 0
                target = compute(current)
                if target is None:
                    logger.debug("Cart mutation is a no-op", action=action, product_id=product_id)
                    return self._lines
                if target <= 0:
                    await backing.delete(product_id)
                else:
                    await backing.put(product_id, target, product)
            except CartPersistenceError as exc:
                self._report_failure(action, backing.identity, product_id, exc, user_initiated)
                raise

        logger.debug(
            "Cart line written",
            action=action,
            user_id=backing.identity.user_id,
            product_id=product_id,
            quantity=max(target, 0),
        )
        # The write has landed; a failed reload must not read as a failed write
        try:
            return await self._refresh_from(backing, user_initiated=False)
        except CartPersistenceError as exc:
            if user_initiated:
                self._notifier.error(CartRefreshError.user_message, action=action)
            raise CartRefreshError(str(exc)) from exc

    async def _refresh_from(
        self,
        backing: CartBacking,
        silent: bool = False,
        user_initiated: bool = True,
    ) -> tuple[CartLine, ...]:
        self._refresh_started += 1
        generation = self._refresh_started
        try:
            lines = await backing.load()
        except CartPersistenceError as exc:
            if silent:
                logger.warning("Background cart refresh failed", user_id=backing.identity.user_id, error=str(exc))
                return self._lines
            self._report_failure("refresh", backing.identity, None, exc, user_initiated)
            raise

        if backing is not self._backing:
            logger.debug("Dropping refresh for a previous identity", user_id=backing.identity.user_id)
            return self._lines
        if generation < self._refresh_applied:
            logger.debug("Dropping stale cart refresh", generation=generation, applied=self._refresh_applied)
            return self._lines

        self._refresh_applied = generation
        self._apply(lines)
        return self._lines

    def _apply(self, lines) -> None:
        self._lines = tuple(lines)
        for listener in list(self._listeners):
            try:
                listener(self._lines)
            except Exception:
                logger.exception("Cart listener failed")

    def _report_failure(
        self,
        action: str,
        identity: Identity,
        product_id: str | None,
        exc: CartPersistenceError,
        user_initiated: bool,
    ) -> None:
        logger.error(
            "Cart persistence failed",
            action=action,
            user_id=identity.user_id,
            product_id=product_id,
            error=str(exc),
        )
        if user_initiated:
            self._notifier.error(exc.user_message, action=action)
