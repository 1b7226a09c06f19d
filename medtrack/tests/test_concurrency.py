from __future__ import annotations

import threading

from medtrack.tests.clinic_helpers import CLINIC, NOW
from medtrack.core import administrations, ledger, models
from medtrack.core.errors import InsufficientStockError


def test_two_concurrent_administrations_at_stock_one(make_item, make_prescription) -> None:
    item = make_item(stock=1)
    prescription = make_prescription(medication_id=item.id)
    barrier = threading.Barrier(2)
    successes: list[int] = []
    refusals: list[InsufficientStockError] = []
    unexpected: list[BaseException] = []
    lock = threading.Lock()

    def worker(nurse: str) -> None:
        payload = models.AdministrationCreate(prescription_id=prescription.id, administered_by=nurse)
        barrier.wait()
        try:
            administration = administrations.record_administration(CLINIC, payload, now=NOW)
        except InsufficientStockError as exc:
            with lock:
                refusals.append(exc)
        except Exception as exc:  # pragma: no cover
            with lock:
                unexpected.append(exc)
        else:
            with lock:
                successes.append(administration.id)

    threads = [threading.Thread(target=worker, args=(f"infirmier-{index}",)) for index in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert unexpected == []
    assert len(successes) == 1
    assert len(refusals) == 1
    assert ledger.get_current_stock(CLINIC, item.id) == 0
    assert ledger.reconcile(CLINIC, item.id).consistent is True


def test_concurrent_decreases_never_oversell(make_item) -> None:
    item = make_item(stock=5)
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        try:
            ledger.apply_movement(CLINIC, item.id, "decrease", 1)
        except InsufficientStockError:
            result = "refused"
        else:
            result = "applied"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert outcomes.count("applied") == 5
    assert outcomes.count("refused") == 3
    assert ledger.get_current_stock(CLINIC, item.id) == 0
    assert ledger.reconcile(CLINIC, item.id).consistent is True
