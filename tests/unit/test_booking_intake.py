"""
Tests for BookingIntake and BookingService.
"""

import pytest

from shuttle.bookings.booking_service import BookingIntake, BookingService
from shuttle.exceptions import NotFoundError, PriceMismatchError, ThrottledError, ValidationError
from shuttle.models import Booking, Route, User
from shuttle.security.rate_limiter import RateLimiter


def _request(route, /, **overrides):
    data = {
        "name": "Ana Pop",
        "email": "ana@example.com",
        "phone": "+40712345678",
        "pickup_address": "Piata Unirii 1, Bucharest",
        "payment_method": "cash",
        "route": {"id": route.id} if route is not None else None,
    }
    data.update(overrides)
    return data


@pytest.fixture
def intake(store, limiters):
    return BookingIntake(store, limiters.booking)


def test_cash_booking_is_confirmed_immediately(intake, make_route):
    route = make_route()

    booking = intake.create(_request(route), "10.0.0.1")

    assert booking.status == "confirmed"
    assert booking.payment_status == "not_required"
    assert booking.payment_method == "cash"
    assert booking.amount == 60.0
    assert booking.route_id == route.id


def test_card_booking_starts_pending(intake, make_route):
    route = make_route()

    booking = intake.create(_request(route, payment_method="card"), "10.0.0.1")

    assert booking.status == "pending"
    assert booking.payment_status == "pending"


def test_booking_amount_comes_from_route(intake, make_route):
    route = make_route(price=75.0)

    booking = intake.create(_request(route, route={"id": route.id, "price": 75.004}), "10.0.0.1")

    assert booking.amount == 75.0


def test_price_mismatch_persists_nothing(intake, store, make_route):
    route = make_route()

    with pytest.raises(PriceMismatchError) as exc_info:
        intake.create(_request(route, route={"id": route.id, "price": 1.0}), "10.0.0.1")

    assert exc_info.value.status_code == 409
    assert store.db.query(Booking).count() == 0
    assert store.db.query(User).count() == 0


def test_out_of_range_route_price_is_rejected_not_clamped(intake, store, make_route):
    route = make_route(price=10000.0)

    with pytest.raises(ValidationError) as exc_info:
        intake.create(_request(route, route={"id": route.id, "price": "25000"}), "10.0.0.1")

    assert exc_info.value.details == ["Invalid route price"]
    assert store.db.query(Booking).count() == 0


@pytest.mark.parametrize("price", ["abc", "-5"])
def test_unparseable_route_price_never_books_for_free(intake, store, price):
    reference = {"provider": "NightLine", "departure": "Sibiu", "arrival": "Prague", "price": price}

    with pytest.raises(ValidationError) as exc_info:
        intake.create(_request(None, route=reference), "10.0.0.1")

    assert exc_info.value.details == ["Invalid route price"]
    assert store.db.query(Route).count() == 0
    assert store.db.query(Booking).count() == 0


def test_invalid_request_lists_errors_and_creates_nothing(intake, store, make_route):
    route = make_route()

    with pytest.raises(ValidationError) as exc_info:
        intake.create(_request(route, name="", payment_method="bitcoin"), "10.0.0.1")

    assert exc_info.value.details == ["Name is required", "Payment method must be 'cash' or 'card'"]
    assert store.db.query(Booking).count() == 0


def test_unknown_route_creates_single_fallback(intake, store):
    booking = intake.create(
        _request(None, route={"provider": "NightLine", "departure": "Sibiu", "arrival": "Prague", "price": 42}),
        "10.0.0.1",
    )

    assert store.db.query(Route).count() == 1
    assert booking.amount == 42.0


def test_repeat_bookings_reuse_the_user(intake, store, make_route):
    route = make_route()

    first = intake.create(_request(route), "10.0.0.1")
    second = intake.create(_request(route, name="Ana Maria Pop"), "10.0.0.1")

    assert first.user_id == second.user_id
    assert store.db.query(User).count() == 1
    assert second.user.name == "Ana Maria Pop"


def test_throttled_client_is_rejected_before_validation(store, fake_clock, make_route):
    route = make_route()
    intake = BookingIntake(store, RateLimiter(max_requests=2, window_seconds=60, clock=fake_clock))

    intake.create(_request(route), "10.0.0.1")
    intake.create(_request(route), "10.0.0.1")
    with pytest.raises(ThrottledError):
        intake.create({}, "10.0.0.1")

    # Other clients keep their own budget
    intake.create(_request(route), "10.0.0.2")
    assert store.db.query(Booking).count() == 3


def test_prepare_does_not_persist_booking(intake, store, make_route):
    route = make_route()

    draft = intake.prepare(_request(route, payment_method="card"), "10.0.0.1")

    assert draft.amount == 60.0
    assert draft.payment_method == "card"
    assert store.db.query(Booking).count() == 0


class TestBookingService:
    @pytest.fixture
    def booking(self, intake, make_route):
        return intake.create(_request(make_route(), payment_method="card"), "10.0.0.1")

    def test_update_status_and_pickup(self, store, booking):
        updated = BookingService(store).update_booking(
            booking.id, {"status": "cancelled", "pickup_address": "Gara de Nord"}
        )

        assert updated.status == "cancelled"
        assert updated.pickup_address == "Gara de Nord"

    def test_card_booking_cannot_become_not_required(self, store, booking):
        with pytest.raises(ValidationError) as exc_info:
            BookingService(store).update_booking(booking.id, {"payment_status": "not_required"})

        assert exc_info.value.details == ["Card bookings cannot have payment status 'not_required'"]

    def test_cash_booking_keeps_not_required(self, store, intake, make_route):
        cash = intake.create(_request(make_route()), "10.0.0.1")

        with pytest.raises(ValidationError) as exc_info:
            BookingService(store).update_booking(cash.id, {"payment_status": "paid"})

        assert exc_info.value.details == ["Cash bookings always have payment status 'not_required'"]

    def test_unknown_status_rejected(self, store, booking):
        with pytest.raises(ValidationError):
            BookingService(store).update_booking(booking.id, {"status": "shipped"})

    def test_delete_and_missing(self, store, booking):
        service = BookingService(store)
        service.delete_booking(booking.id)

        with pytest.raises(NotFoundError):
            service.get_booking(booking.id)
