"""Cart merge reconciler — folds the anonymous cart into the signed-in cart.

Runs on identity transitions:

    anonymous        → authenticated     merge local lines, then refresh
    authenticated(A) → authenticated(A)  nothing
    authenticated(A) → authenticated(B)  switch to B's cart, refresh
    authenticated    → anonymous         switch to an empty local cart

The merge submits lines one at a time through ``CartStore.add_or_increment``
so each one goes through the same per-line read-modify-write as a tap in
the UI. It is best effort: a failing line does not stop the others and
lines already merged are not rolled back. Failed lines are kept so the user
can retry them.
"""

from dataclasses import dataclass, field

from ordering.cart.lines import CartLine
from ordering.cart.store import CartStore
from ordering.utils.logging import logger
from shared.errors import CartPersistenceError, CartRefreshError, MergeError
from shared.identity import Identity, IdentitySignal
from shared.notifications import NotificationSink


@dataclass(frozen=True)
class MergeReport:
    """Outcome of one merge pass."""

    user_id: str
    merged: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()
    failed_lines: tuple[CartLine, ...] = field(default=(), repr=False)

    @property
    def ok(self) -> bool:
        return not self.failed

    def as_error(self) -> MergeError | None:
        return MergeError(list(self.failed)) if self.failed else None


class CartMergeReconciler:
    def __init__(self, store: CartStore, notifier: NotificationSink) -> None:
        self.store = store
        self.notifier = notifier
        self.last_report: MergeReport | None = None
        self._pending: tuple[CartLine, ...] = ()

    def attach(self, signal: IdentitySignal):
        """Subscribe to ``signal``; returns the unsubscribe callable."""
        return signal.subscribe(self.on_identity_changed)

    @property
    def pending_lines(self) -> tuple[CartLine, ...]:
        """Lines that failed to merge and can be retried."""
        return self._pending

    async def on_identity_changed(self, previous: Identity, current: Identity) -> MergeReport | None:
        if previous == current:
            return None

        self._pending = ()

        if not current.is_authenticated:
            logger.info("Signed out; starting an empty local cart", previous_user_id=previous.user_id)
            self.store.switch_identity(current)
            return None

        if previous.is_authenticated:
            logger.info("Switched accounts; loading cart", previous_user_id=previous.user_id, user_id=current.user_id)
            self.store.switch_identity(current)
            await self.store.refresh(silent=True)
            return None

        captured = self.store.get_lines()
        async with self.store.merging():
            self.store.switch_identity(current)
            return await self._merge(current, captured)

    async def retry_failed(self) -> MergeReport | None:
        """Re-submit the lines that failed in the last merge."""
        if not self._pending:
            return None
        identity = self.store.identity
        if not identity.is_authenticated:
            logger.warning("Merge retry requested without a signed-in user")
            return None
        async with self.store.merging():
            return await self._merge(identity, self._pending)

    async def _merge(self, identity: Identity, lines: tuple[CartLine, ...]) -> MergeReport:
        merged: list[str] = []
        failed: list[CartLine] = []

        logger.info("Merging local cart", user_id=identity.user_id, line_count=len(lines))
        for line in lines:
            try:
                await self.store.add_or_increment(line.product, line.quantity, user_initiated=False)
            except CartRefreshError as exc:
                # Written; only the reload failed, and the final refresh below retries it
                logger.warning(
                    "Merged cart line but could not reload the cart",
                    user_id=identity.user_id,
                    product_id=line.product_id,
                    error=str(exc),
                )
                merged.append(line.product_id)
            except CartPersistenceError as exc:
                logger.warning(
                    "Failed to merge cart line",
                    user_id=identity.user_id,
                    product_id=line.product_id,
                    error=str(exc),
                )
                failed.append(line)
            else:
                merged.append(line.product_id)

        await self.store.refresh(silent=True)

        report = MergeReport(
            user_id=identity.user_id,
            merged=tuple(merged),
            failed=tuple(line.product_id for line in failed),
            failed_lines=tuple(failed),
        )
        self._pending = report.failed_lines
        self.last_report = report

        if report.ok:
            logger.info("Local cart merged", user_id=identity.user_id, merged_count=len(merged))
        else:
            error = report.as_error()
            logger.warning("Local cart merged with failures", user_id=identity.user_id, failed=list(report.failed))
            self.notifier.error(error.user_message, failed_product_ids=list(report.failed))
        return report
