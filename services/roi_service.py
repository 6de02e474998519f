# services/roi_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from data_integrator import DocumentStore, query_date_window
from domain.models import (
    SOURCE_COLLECTIONS,
    Bill,
    BillLineItem,
    InventoryItem,
    LineItemType,
    StaffMember,
    WorkDescription,
)
from domain.results import InventoryROI, PeriodROI, ROIResult, ServiceROI, StaffROI

logger = logging.getLogger(__name__)


def roi_percentage(net_profit: float, total_cost: float) -> float:
    return net_profit / total_cost * 100 if total_cost > 0 else 0


def line_cost(item: BillLineItem) -> float:
    return item.cost * item.quantity


def fetch_bills(
        store: DocumentStore,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
) -> List[Bill]:
    return [Bill.from_document(doc) for doc in query_date_window(store, "bills", start, end)]


def matching_items(bills: List[Bill], entity_type: LineItemType, entity_id: str) -> List[BillLineItem]:
    return [
        item
        for bill in bills
        for item in bill.items
        if item.type == entity_type and item.source_id == entity_id
    ]


def _base_figures(items: List[BillLineItem]) -> Dict[str, Any]:
    total_income = sum(i.amount for i in items)
    total_cost = sum(line_cost(i) for i in items)
    net_profit = total_income - total_cost
    count = len(items)

    return {
        "total_income": total_income,
        "total_cost": total_cost,
        "net_profit": net_profit,
        "roi_percentage": roi_percentage(net_profit, total_cost),
        "item_count": count,
        "avg_profit": net_profit / count if count > 0 else 0,
    }


def build_staff_roi(staff_id: str, bills: List[Bill], doc: Optional[Dict[str, Any]]) -> StaffROI:
    items = matching_items(bills, LineItemType.STAFF, staff_id)
    staff = StaffMember.from_document(doc) if doc else StaffMember(id=staff_id, name="Unknown")

    return StaffROI(
        entity_id=staff_id,
        name=staff.name,
        category=staff.role,
        services_provided=items,
        hourly_rate=staff.billing_rate,
        salary_cost=staff.cost_rate,
        **_base_figures(items),
    )


def build_inventory_roi(inventory_id: str, bills: List[Bill], doc: Optional[Dict[str, Any]]) -> InventoryROI:
    items = matching_items(bills, LineItemType.INVENTORY, inventory_id)
    inventory = InventoryItem.from_document(doc) if doc else InventoryItem(id=inventory_id, name="Unknown")
    figures = _base_figures(items)
    units_sold = sum(i.quantity for i in items)

    return InventoryROI(
        entity_id=inventory_id,
        name=inventory.name,
        category=inventory.category,
        units_sold=units_sold,
        avg_selling_price=figures["total_income"] / units_sold if units_sold > 0 else 0,
        avg_cost_price=figures["total_cost"] / units_sold if units_sold > 0 else 0,
        turnover_rate=units_sold / inventory.quantity if inventory.quantity > 0 else 0,
        **figures,
    )


def build_service_roi(service_id: str, bills: List[Bill], doc: Optional[Dict[str, Any]]) -> ServiceROI:
    items = matching_items(bills, LineItemType.SERVICE, service_id)
    service = WorkDescription.from_document(doc) if doc else WorkDescription(id=service_id, description="Unknown")
    figures = _base_figures(items)

    return ServiceROI(
        entity_id=service_id,
        name=service.description,
        category=service.category,
        times_provided=len(items),
        avg_rate=figures["total_income"] / len(items) if items else 0,
        **figures,
    )


_BUILDERS = {
    LineItemType.STAFF: build_staff_roi,
    LineItemType.INVENTORY: build_inventory_roi,
    LineItemType.SERVICE: build_service_roi,
}


def _entity_roi_from_bills(
        store: DocumentStore,
        entity_type: LineItemType,
        entity_id: str,
        bills: List[Bill],
) -> ROIResult:
    doc = store.get(SOURCE_COLLECTIONS[entity_type], entity_id)
    return _BUILDERS[entity_type](entity_id, bills, doc)


def compute_entity_roi(
        store: DocumentStore,
        entity_type: LineItemType,
        entity_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
) -> ROIResult:
    """
    ROI for one staff member, inventory item or service over the bills
    dated within [start, end] (either bound optional).
    """
    entity_type = LineItemType(entity_type)
    bills = fetch_bills(store, start, end)
    return _entity_roi_from_bills(store, entity_type, entity_id, bills)


def _ranked(results: List[ROIResult]) -> List[Any]:
    return sorted(results, key=lambda r: r.roi_percentage, reverse=True)


def compute_period_roi(store: DocumentStore, start: datetime, end: datetime) -> PeriodROI:
    """
    Shop-wide ROI for a period plus per-entity breakdowns.
    Bills are read once; an entity that fails is logged and left out.
    """
    bills = fetch_bills(store, start, end)

    total_income = 0.0
    total_cost = 0.0
    ids: Dict[LineItemType, Dict[str, None]] = {t: {} for t in LineItemType}

    for bill in bills:
        total_income += bill.total_amount
        for item in bill.items:
            total_cost += line_cost(item)
            if item.source_id and item.type is not None:
                ids[item.type].setdefault(item.source_id, None)

    per_type: Dict[LineItemType, List[ROIResult]] = {t: [] for t in LineItemType}

    for entity_type, entity_ids in ids.items():
        for entity_id in entity_ids:
            try:
                per_type[entity_type].append(
                    _entity_roi_from_bills(store, entity_type, entity_id, bills)
                )
            except Exception as e:
                logger.error("Error calculating ROI for %s %s: %s", entity_type.value, entity_id, e)

    net_profit = total_income - total_cost

    return PeriodROI(
        start_date=start,
        end_date=end,
        total_income=total_income,
        total_cost=total_cost,
        net_profit=net_profit,
        roi_percentage=roi_percentage(net_profit, total_cost),
        staff_roi=_ranked(per_type[LineItemType.STAFF]),
        inventory_roi=_ranked(per_type[LineItemType.INVENTORY]),
        service_roi=_ranked(per_type[LineItemType.SERVICE]),
    )


def top_performing_staff(
        store: DocumentStore,
        limit: int = 10,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
) -> List[StaffROI]:
    """Staff with billed income, best ROI first."""
    bills = fetch_bills(store, start, end)
    results: List[StaffROI] = []

    for doc in store.fetch_all("staff"):
        try:
            roi = build_staff_roi(doc["id"], bills, doc)
        except Exception as e:
            logger.error("Error calculating ROI for staff %s: %s", doc.get("id"), e)
            continue
        if roi.total_income > 0:
            results.append(roi)

    return _ranked(results)[:limit]
