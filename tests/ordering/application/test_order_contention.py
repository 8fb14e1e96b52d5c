"""Concurrent orders racing for the same food item.

Each worker thread places its order through its own connection from the
shared engine, so the database (not Python) decides who gets the portions.
"""

import threading

import pytest
from shared.exceptions import InsufficientInventory

pytestmark = pytest.mark.slow


def _race(place_order, workers, quantity):
    barrier = threading.Barrier(workers)
    placed, rejected, errors = [], [], []
    lock = threading.Lock()

    def worker(user_id):
        barrier.wait()
        try:
            order_id = place_order(user_id=user_id, quantity=quantity)
        except InsufficientInventory:
            with lock:
                rejected.append(user_id)
        except Exception as exc:  # noqa: BLE001
            with lock:
                errors.append(exc)
        else:
            with lock:
                placed.append(order_id)

    threads = [threading.Thread(target=worker, args=(100 + n,)) for n in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    return placed, rejected, errors


class TestConcurrentDepletion:
    def test_last_portions_never_oversold(self, marketplace, place_order, food_item_id):
        placed, rejected, errors = _race(place_order, workers=8, quantity=3)

        assert errors == []
        # 10 portions cover three orders of three
        assert len(placed) == 3
        assert len(rejected) == 5
        assert marketplace.catalog.quantity_of(food_item_id) == 1
        assert len(marketplace.ledger.find_all()) == 3

    def test_concurrent_cancellations_restore_exactly(self, marketplace, place_order, food_item_id):
        order_ids = [place_order(user_id=7, quantity=2) for _ in range(5)]
        assert marketplace.catalog.quantity_of(food_item_id) == 0

        barrier = threading.Barrier(len(order_ids))
        errors = []

        def cancel(order_id):
            barrier.wait()
            try:
                marketplace.ledger.cancel(order_id, requesting_user_id=7)
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=cancel, args=(order_id,)) for order_id in order_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert errors == []
        assert marketplace.catalog.quantity_of(food_item_id) == 10
