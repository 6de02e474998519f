import pytest

from conftest import InMemoryStore, line, make_bill, utc
from domain.models import LineItemType
from services import roi_service
from services.roi_service import (
    compute_entity_roi,
    compute_period_roi,
    roi_percentage,
    top_performing_staff,
)


def roi_store():
    return InMemoryStore({
        "staff": [
            {"id": "s1", "name": "Asha", "designation": "Tailor", "billingRate": 100, "costRate": 60},
            {"id": "s2", "name": "Ravi", "role": "Embroiderer"},
        ],
        "inventory": [
            {"id": "i1", "name": "Silk", "category": "Fabric", "quantity": 10, "costPerUnit": 40},
        ],
        "workDescriptions": [
            {"id": "w1", "description": "Blouse stitching", "category": "Stitching", "rate": 500},
        ],
        "bills": [
            make_bill("b1", "Bill001", 1, utc(2024, 5, 3), totalAmount=600, items=[
                line("s1", "staff", 100, 60),
                line("i1", "inventory", 200, 40, quantity=4),
                line("w1", "service", 300, 300),
            ]),
            make_bill("b2", "Bill002", 2, utc(2024, 5, 20), totalAmount=250, items=[
                line("s1", "staff", 200, 60, quantity=2),
                line("s2", "staff", 50, 50),
            ]),
            make_bill("b3", "Bill003", 3, utc(2024, 7, 1), totalAmount=1000, items=[
                line("s1", "staff", 1000, 10),
            ]),
        ],
    })


def test_roi_percentage_zero_cost_guard():
    assert roi_percentage(500, 0) == 0
    assert roi_percentage(-20, 0) == 0
    assert roi_percentage(50, 100) == 50


def test_staff_roi_example():
    roi = compute_entity_roi(roi_store(), LineItemType.STAFF, "s1", utc(2024, 5, 1), utc(2024, 5, 31))

    assert roi.total_income == 300
    assert roi.total_cost == 180
    assert roi.net_profit == 120
    assert roi.roi_percentage == pytest.approx(66.6667, abs=1e-3)
    assert roi.item_count == 2
    assert roi.avg_profit == 60
    assert roi.name == "Asha"
    assert roi.category == "Tailor"
    assert roi.hourly_rate == 100
    assert len(roi.services_provided) == 2


def test_entity_roi_without_bounds_reads_every_bill():
    roi = compute_entity_roi(roi_store(), "staff", "s1")
    assert roi.total_income == 1300


def test_inventory_roi_extras():
    roi = compute_entity_roi(roi_store(), LineItemType.INVENTORY, "i1")

    assert roi.units_sold == 4
    assert roi.total_cost == 160
    assert roi.avg_selling_price == 50
    assert roi.avg_cost_price == 40
    assert roi.turnover_rate == pytest.approx(0.4)
    assert roi.category == "Fabric"


def test_service_roi_with_zero_profit():
    roi = compute_entity_roi(roi_store(), LineItemType.SERVICE, "w1")

    assert roi.times_provided == 1
    assert roi.avg_rate == 300
    assert roi.net_profit == 0
    assert roi.roi_percentage == 0


def test_missing_entity_gets_unknown_name():
    roi = compute_entity_roi(roi_store(), LineItemType.STAFF, "ghost")

    assert roi.name == "Unknown"
    assert roi.total_income == 0
    assert roi.roi_percentage == 0
    assert roi.avg_profit == 0


def test_period_roi_totals_and_ranking():
    period = compute_period_roi(roi_store(), utc(2024, 5, 1), utc(2024, 5, 31))

    assert period.total_income == 850
    assert period.total_cost == 60 + 160 + 300 + 120 + 50
    assert period.net_profit == 850 - 690
    assert [r.entity_id for r in period.staff_roi] == ["s1", "s2"]
    assert [r.entity_id for r in period.inventory_roi] == ["i1"]
    assert [r.entity_id for r in period.service_roi] == ["w1"]


def test_period_roi_skips_an_entity_that_fails(monkeypatch):
    original = roi_service.build_staff_roi

    def flaky(staff_id, bills, doc):
        if staff_id == "s2":
            raise RuntimeError("boom")
        return original(staff_id, bills, doc)

    monkeypatch.setitem(roi_service._BUILDERS, LineItemType.STAFF, flaky)

    period = compute_period_roi(roi_store(), utc(2024, 5, 1), utc(2024, 5, 31))

    assert [r.entity_id for r in period.staff_roi] == ["s1"]
    assert period.total_income == 850


def test_map_dated_bills_fall_outside_date_windows():
    store = roi_store()
    store.put("bills", make_bill("b4", "Bill004", 4, {"seconds": 1715000000, "nanoseconds": 0},
                                 totalAmount=999, items=[line("s1", "staff", 999, 0)]))

    roi = compute_entity_roi(store, LineItemType.STAFF, "s1", utc(2024, 5, 1), utc(2024, 5, 31))

    assert roi.total_income == 300


def test_date_only_bills_count_in_their_day():
    store = roi_store()
    store.put("bills", make_bill("b4", "Bill004", 4, "2024-05-31", items=[line("s1", "staff", 40, 0)]))
    store.put("bills", make_bill("b5", "Bill005", 5, utc(2024, 5, 31, 12), items=[line("s1", "staff", 7, 0)]))

    roi = compute_entity_roi(store, LineItemType.STAFF, "s1", utc(2024, 5, 1), utc(2024, 5, 31))

    assert roi.total_income == 300 + 40


def test_top_performing_staff():
    top = top_performing_staff(roi_store(), limit=1)

    assert [s.entity_id for s in top] == ["s1"]
