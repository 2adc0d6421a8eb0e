"""Tests for merging the anonymous cart into the signed-in user's cart."""

import pytest
from ordering.cart.merge import CartMergeReconciler
from shared.errors import MergeError
from shared.identity import ANONYMOUS, Identity, IdentitySignal
from shared.notifications import NoticeKind


def _quantities(store):
    return {line.product_id: line.quantity for line in store.get_lines()}


@pytest.fixture()
def anonymous_signal():
    return IdentitySignal(ANONYMOUS)


@pytest.fixture()
def reconciler(store, notifier, anonymous_signal):
    reconciler = CartMergeReconciler(store, notifier)
    reconciler.attach(anonymous_signal)
    return reconciler


async def _fill_local_cart(store, products):
    await store.add_or_increment(products["A"], 2)
    await store.add_or_increment(products["B"], 1)


class TestSignInMerge:
    async def test_local_lines_are_added_to_remote_cart(
        self, reconciler, anonymous_signal, store, storage, products
    ):
        await _fill_local_cart(store, products)
        storage.seed("user_42", A=3)

        await anonymous_signal.sign_in("user_42", "ada@example.com")

        assert storage.quantities("user_42") == {"A": 5, "B": 1}
        assert _quantities(store) == {"A": 5, "B": 1}
        assert store.is_remote
        assert reconciler.last_report.ok
        assert set(reconciler.last_report.merged) == {"A", "B"}

    async def test_empty_local_cart_just_loads_remote(self, reconciler, anonymous_signal, store, storage):
        storage.seed("user_42", A=3)
        await anonymous_signal.sign_in("user_42")
        assert _quantities(store) == {"A": 3}
        assert reconciler.last_report.merged == ()

    async def test_merge_does_not_notify_on_success(
        self, reconciler, anonymous_signal, store, notifier, products
    ):
        await _fill_local_cart(store, products)
        await anonymous_signal.sign_in("user_42")
        assert notifier.notices == []

    async def test_lines_are_merged_one_at_a_time(self, reconciler, anonymous_signal, store, storage, products):
        await _fill_local_cart(store, products)
        await anonymous_signal.sign_in("user_42")
        upserts = [call[2] for call in storage.calls if call[0] == "upsert"]
        assert upserts == ["A", "B"]


class TestMergeFailures:
    async def test_failed_line_does_not_stop_others(
        self, reconciler, anonymous_signal, store, storage, notifier, products
    ):
        await _fill_local_cart(store, products)
        storage.configure(failing_products={"A"})

        await anonymous_signal.sign_in("user_42")

        report = reconciler.last_report
        assert report.failed == ("A",)
        assert report.merged == ("B",)
        assert storage.quantities("user_42") == {"B": 1}
        assert _quantities(store) == {"B": 1}

        errors = notifier.of_kind(NoticeKind.ERROR)
        assert len(errors) == 1
        assert errors[0].message == MergeError.user_message
        assert errors[0].data == {"failed_product_ids": ["A"]}

    async def test_report_converts_to_merge_error(self, reconciler, anonymous_signal, store, storage, products):
        await _fill_local_cart(store, products)
        storage.configure(failing_products={"A", "B"})
        await anonymous_signal.sign_in("user_42")

        error = reconciler.last_report.as_error()
        assert isinstance(error, MergeError)
        assert error.failed_product_ids == ["A", "B"]

    async def test_retry_failed_lines(self, reconciler, anonymous_signal, store, storage, products):
        await _fill_local_cart(store, products)
        storage.configure(failing_products={"A"})
        await anonymous_signal.sign_in("user_42")
        assert [line.product_id for line in reconciler.pending_lines] == ["A"]

        storage.configure()
        report = await reconciler.retry_failed()

        assert report.ok
        assert reconciler.pending_lines == ()
        assert storage.quantities("user_42") == {"A": 2, "B": 1}

    async def test_retry_without_pending_lines(self, reconciler):
        assert await reconciler.retry_failed() is None

    async def test_line_written_before_a_failed_reload_is_not_merged_twice(
        self, reconciler, anonymous_signal, store, storage, catalog, products
    ):
        await store.add_or_increment(products["A"], 2)
        catalog.fail_lookups = True

        await anonymous_signal.sign_in("user_42")

        assert reconciler.last_report.merged == ("A",)
        assert reconciler.pending_lines == ()

        catalog.fail_lookups = False
        assert await reconciler.retry_failed() is None
        assert storage.quantities("user_42") == {"A": 2}
        await store.refresh()
        assert _quantities(store) == {"A": 2}


class TestIdentityTransitions:
    async def test_sign_out_starts_empty_local_cart(self, reconciler, anonymous_signal, store, storage, products):
        await anonymous_signal.sign_in("user_42")
        await store.add_or_increment(products["A"])

        await anonymous_signal.sign_out()

        assert store.is_empty
        assert not store.is_remote
        assert storage.quantities("user_42") == {"A": 1}

    async def test_account_switch_loads_other_cart_without_merging(
        self, reconciler, anonymous_signal, store, storage
    ):
        storage.seed("user_42", A=3)
        storage.seed("user_7", B=2)
        await anonymous_signal.sign_in("user_42")

        await anonymous_signal.publish(Identity.authenticated("user_7"))

        assert _quantities(store) == {"B": 2}
        assert storage.quantities("user_7") == {"B": 2}
        assert storage.quantities("user_42") == {"A": 3}

    async def test_same_identity_is_ignored(self, reconciler, store, storage):
        user = Identity.authenticated("user_42")
        assert await reconciler.on_identity_changed(user, user) is None
        assert storage.calls == []

    async def test_sign_out_drops_pending_retries(self, reconciler, anonymous_signal, store, storage, products):
        await _fill_local_cart(store, products)
        storage.configure(failing_products={"A"})
        await anonymous_signal.sign_in("user_42")

        await anonymous_signal.sign_out()

        assert reconciler.pending_lines == ()
