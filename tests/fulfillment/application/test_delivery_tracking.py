"""Application tests for delivery tracking and its reaction to order events."""

import re
from datetime import UTC, datetime, timedelta

import pytest
from fulfillment.delivery.tracking import DeliveryStatus
from shared.exceptions import NotFoundOrUnauthorized, ValidationError


class TestTrackingFollowsOrders:
    def test_created_with_order(self, marketplace, order_id):
        tracking = marketplace.tracker.find_by_order_id(order_id)
        assert tracking.status == DeliveryStatus.PENDING.value
        assert re.fullmatch(r"TRK-\d{13,}-[0-9A-F]{8}", tracking.tracking_number)
        assert [entry["status"] for entry in tracking.status_history] == ["pending"]

    @pytest.mark.parametrize("status", ["ready", "picked_up", "delivered"])
    def test_delivery_statuses_mirrored(self, marketplace, order_id, status):
        marketplace.ledger.update_status(order_id, status)
        assert marketplace.tracker.find_by_order_id(order_id).status == status

    @pytest.mark.parametrize("status", ["confirmed", "preparing"])
    def test_kitchen_statuses_not_mirrored(self, marketplace, order_id, status):
        marketplace.ledger.update_status(order_id, status)
        assert marketplace.tracker.find_by_order_id(order_id).status == "pending"

    def test_cancellation_closes_tracking(self, marketplace, order_id):
        marketplace.ledger.cancel(order_id, requesting_user_id=7)
        assert marketplace.tracker.find_by_order_id(order_id).status == DeliveryStatus.CANCELLED.value

    def test_history_accumulates(self, marketplace, order_id):
        marketplace.ledger.update_status(order_id, "ready")
        marketplace.ledger.update_status(order_id, "picked_up")

        history = marketplace.tracker.find_by_order_id(order_id).status_history
        assert [entry["status"] for entry in history] == ["pending", "ready", "picked_up"]


class TestDeliveryTracker:
    def test_find_by_tracking_number(self, marketplace, order_id):
        tracking = marketplace.tracker.find_by_order_id(order_id)
        assert marketplace.tracker.find_by_tracking_number(tracking.tracking_number).order_id == order_id

    def test_find_all_by_status(self, marketplace, order_id):
        assert [t.order_id for t in marketplace.tracker.find_all(status="pending")] == [order_id]
        assert marketplace.tracker.find_all(status="delivered") == []

    def test_update_with_location(self, marketplace, order_id):
        eta = datetime.now(UTC) + timedelta(minutes=20)
        marketplace.tracker.update_status(
            order_id,
            "in_transit",
            current_location={"lat": 18.52, "lng": 73.85},
            estimated_delivery_time=eta,
        )

        tracking = marketplace.tracker.find_by_order_id(order_id)
        assert tracking.status == "in_transit"
        assert tracking.current_location == {"lat": 18.52, "lng": 73.85}
        assert tracking.estimated_delivery_time is not None

    def test_external_update_keeps_status_when_missing(self, marketplace, order_id):
        marketplace.tracker.update_from_external(order_id, {"location": {"lat": 1.0, "lng": 2.0}})

        tracking = marketplace.tracker.find_by_order_id(order_id)
        assert tracking.status == "pending"
        assert tracking.status_history[-1]["source"] == "external_api"

    def test_external_update_parses_eta(self, marketplace, order_id):
        marketplace.tracker.update_from_external(
            order_id, {"status": "in_transit", "estimated_delivery_time": "2030-01-01T12:30:00+00:00"}
        )
        assert marketplace.tracker.find_by_order_id(order_id).estimated_delivery_time.year == 2030

    def test_unknown_status(self, marketplace, order_id):
        with pytest.raises(ValidationError):
            marketplace.tracker.update_status(order_id, "beamed")

    def test_missing_tracking(self, marketplace):
        with pytest.raises(NotFoundOrUnauthorized):
            marketplace.tracker.update_status(404, "ready")
