"""
Tests for the payment gateways and PaymentReconciler.
"""

from unittest import mock

import pytest
import stripe

from shuttle.bookings.booking_service import BookingIntake
from shuttle.bookings.payment_service import (
    PaymentConfirmation,
    PaymentReconciler,
    SimulatedPaymentGateway,
    StripePaymentGateway,
    build_payment_gateway,
    intent_id_from_secret,
    to_minor_units,
)
from shuttle.config import Settings
from shuttle.exceptions import (
    ConflictError, ExternalError, PaymentDeclinedError, PriceMismatchError, UniqueViolationError
)
from shuttle.models import Booking


@pytest.fixture
def draft(store, limiters, make_route):
    route = make_route()
    return BookingIntake(store, limiters.booking).prepare(
        {
            "name": "Ana Pop",
            "email": "ana@example.com",
            "phone": "+40712345678",
            "pickup_address": "Piata Unirii 1",
            "payment_method": "card",
            "route": {"id": route.id},
        },
        "10.0.0.1",
    )


@pytest.fixture
def pending_booking(store, limiters, draft):
    return BookingIntake(store, limiters.booking).persist(draft)


def test_intent_id_from_secret():
    assert intent_id_from_secret("pi_123_secret_abc") == "pi_123"
    assert to_minor_units(60.0) == 6000
    assert to_minor_units(19.99) == 1999


class TestSimulatedGateway:
    def test_confirm_succeeds_with_real_method(self):
        gateway = SimulatedPaymentGateway()
        secret = gateway.create_intent(60.0, "eur")

        confirmation = gateway.confirm(secret, "pm_card_visa")

        assert confirmation.succeeded
        assert confirmation.amount == 60.0
        assert confirmation.id == intent_id_from_secret(secret)

    def test_declined_method_and_unknown_secret(self):
        gateway = SimulatedPaymentGateway()
        secret = gateway.create_intent(60.0, "eur")

        assert not gateway.confirm(secret, "pm_card_declined").succeeded
        assert not gateway.confirm("pi_missing_secret_x", "pm_card_visa").succeeded


class TestStripeGateway:
    def test_create_intent_sends_minor_units(self):
        with mock.patch("stripe.PaymentIntent.create") as create:
            create.return_value = mock.Mock(client_secret="pi_1_secret_2")

            secret = StripePaymentGateway("sk_test").create_intent(19.99, "eur")

        assert secret == "pi_1_secret_2"
        assert create.call_args.kwargs["amount"] == 1999
        assert create.call_args.kwargs["api_key"] == "sk_test"

    def test_confirm_converts_amount_back(self):
        with mock.patch("stripe.PaymentIntent.confirm") as confirm:
            confirm.return_value = mock.Mock(id="pi_1", status="succeeded", amount=6000)

            confirmation = StripePaymentGateway("sk_test").confirm("pi_1_secret_2", "pm_card_visa")

        confirm.assert_called_once_with("pi_1", payment_method="pm_card_visa", api_key="sk_test")
        assert confirmation.succeeded
        assert confirmation.amount == 60.0

    def test_stripe_failure_becomes_external_error(self):
        with mock.patch("stripe.PaymentIntent.create", side_effect=stripe.StripeError("boom")):
            with pytest.raises(ExternalError):
                StripePaymentGateway("sk_test").create_intent(10.0, "eur")


def test_build_payment_gateway_selects_provider():
    assert isinstance(build_payment_gateway(Settings(PAYMENT_PROVIDER="simulated")), SimulatedPaymentGateway)
    assert isinstance(
        build_payment_gateway(Settings(PAYMENT_PROVIDER="stripe", STRIPE_SECRET_KEY="sk_test")),
        StripePaymentGateway,
    )
    with pytest.raises(ValueError):
        build_payment_gateway(Settings(PAYMENT_PROVIDER="stripe", STRIPE_SECRET_KEY=""))


class TestReconcileDraft:
    def test_success_creates_paid_booking(self, store, draft):
        booking = PaymentReconciler(store).reconcile(draft, PaymentConfirmation("pi_1", "succeeded", 60.0))

        assert booking.status == "confirmed"
        assert booking.payment_status == "paid"
        assert booking.payment_reference == "pi_1"
        assert booking.amount == 60.0

    @pytest.mark.parametrize(
        "confirmation",
        [None, PaymentConfirmation("pi_1", "requires_payment_method"), PaymentConfirmation("pi_1", "processing")],
    )
    def test_failure_creates_nothing(self, store, draft, confirmation):
        with pytest.raises(PaymentDeclinedError) as exc_info:
            PaymentReconciler(store).reconcile(draft, confirmation)

        assert exc_info.value.status_code == 402
        assert store.db.query(Booking).count() == 0

    def test_amount_mismatch(self, store, draft):
        with pytest.raises(PriceMismatchError):
            PaymentReconciler(store).reconcile(draft, PaymentConfirmation("pi_1", "succeeded", 10.0))

        assert store.db.query(Booking).count() == 0


class TestReconcileBooking:
    def test_success_marks_booking_paid(self, store, pending_booking):
        booking = PaymentReconciler(store).reconcile(
            pending_booking, PaymentConfirmation("pi_1", "succeeded", 60.0)
        )

        assert booking.status == "confirmed"
        assert booking.payment_status == "paid"
        assert booking.payment_reference == "pi_1"

    def test_failure_marks_booking_failed_and_allows_retry(self, store, pending_booking):
        reconciler = PaymentReconciler(store)

        with pytest.raises(PaymentDeclinedError):
            reconciler.reconcile(pending_booking, PaymentConfirmation("pi_1", "requires_payment_method"))

        assert pending_booking.payment_status == "failed"
        assert pending_booking.status == "pending"

        booking = reconciler.reconcile(pending_booking, PaymentConfirmation("pi_2", "succeeded"))
        assert booking.payment_status == "paid"
        assert booking.payment_reference == "pi_2"

    def test_paid_booking_cannot_be_reconciled_again(self, store, pending_booking):
        reconciler = PaymentReconciler(store)
        reconciler.reconcile(pending_booking, PaymentConfirmation("pi_1", "succeeded"))

        with pytest.raises(ConflictError):
            reconciler.reconcile(pending_booking, PaymentConfirmation("pi_1", "succeeded"))

    def test_cash_booking_rejected(self, store, pending_booking):
        store.update(pending_booking, payment_method="cash", status="confirmed", payment_status="not_required")

        with pytest.raises(ConflictError):
            PaymentReconciler(store).reconcile(pending_booking, PaymentConfirmation("pi_1", "succeeded"))

    def test_cancelled_booking_rejected(self, store, pending_booking):
        store.update(pending_booking, status="cancelled")

        with pytest.raises(ConflictError):
            PaymentReconciler(store).reconcile(pending_booking, PaymentConfirmation("pi_1", "succeeded"))


class TestPaymentReferenceReuse:
    def test_one_confirmation_settles_one_booking(self, store, limiters, draft):
        intake = BookingIntake(store, limiters.booking)
        bookings = [intake.persist(draft) for _ in range(3)]
        reconciler = PaymentReconciler(store)
        confirmation = PaymentConfirmation("pi_1", "succeeded", 60.0)

        reconciler.reconcile(bookings[0], confirmation)
        for booking in bookings[1:]:
            with pytest.raises(ConflictError) as exc_info:
                reconciler.reconcile(booking, confirmation)

            assert exc_info.value.message == "Payment has already been applied to another booking"
            assert booking.payment_status == "pending"

        assert store.db.query(Booking).filter_by(payment_status="paid").count() == 1

    def test_draft_cannot_reuse_a_settled_confirmation(self, store, draft, pending_booking):
        reconciler = PaymentReconciler(store)
        reconciler.reconcile(pending_booking, PaymentConfirmation("pi_1", "succeeded", 60.0))

        with pytest.raises(ConflictError):
            reconciler.reconcile(draft, PaymentConfirmation("pi_1", "succeeded", 60.0))

        assert store.db.query(Booking).count() == 1

    def test_same_booking_may_retry_a_declined_intent(self, store, pending_booking):
        reconciler = PaymentReconciler(store)

        with pytest.raises(PaymentDeclinedError):
            reconciler.reconcile(pending_booking, PaymentConfirmation("pi_1", "requires_payment_method"))

        booking = reconciler.reconcile(pending_booking, PaymentConfirmation("pi_1", "succeeded", 60.0))
        assert booking.payment_status == "paid"

    def test_reference_column_is_unique(self, store, limiters, draft, pending_booking):
        other = BookingIntake(store, limiters.booking).persist(draft)
        store.update(pending_booking, payment_reference="pi_1")

        with pytest.raises(UniqueViolationError):
            store.update(other, payment_reference="pi_1")
