import random

import pytest

from conftest import InMemoryStore, make_bill, utc
from domain.models import Bill
from domain.results import BillIdFormat
from services.bill_numbering import (
    canonicalize,
    classify_bill_id,
    diagnose_bills,
    diagnose_duplicates,
    execute_migration,
    fix_duplicates,
    list_bills_by_number,
    load_bills,
    next_bill_number,
    parse_bill_number,
    plan_duplicate_fix,
    plan_migration,
    preview_migration,
    sort_bills,
)
from utils.dates import coerce_datetime


def messy_bills():
    return [
        make_bill("d", "#101", None, utc(2024, 3, 4)),
        make_bill("a", "BILL215896", None, utc(2024, 1, 15)),
        make_bill("c", None, None, utc(2024, 2, 1)),
        make_bill("b", "Bill007", 7, utc(2024, 1, 15)),
        make_bill("e", "Bill001", 1, None),
        make_bill("f", "#102", None, {"seconds": 1700000000, "nanoseconds": 0}),
    ]


@pytest.fixture
def messy_store():
    return InMemoryStore({"bills": messy_bills()})


# ---------------------------------------------------------------------------
# identifiers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("n, expected", [(1, "Bill001"), (42, "Bill042"), (999, "Bill999"), (1000, "Bill1000")])
def test_canonicalize(n, expected):
    assert canonicalize(n) == expected
    assert parse_bill_number(expected) == n


def test_canonicalize_rejects_non_positive():
    with pytest.raises(ValueError):
        canonicalize(0)


@pytest.mark.parametrize("bill_id, number, expected", [
    ("Bill001", None, BillIdFormat.CORRECT),
    ("Bill001", 1, BillIdFormat.CORRECT),
    ("Bill005", 7, BillIdFormat.MISSING),
    ("#101", None, BillIdFormat.HASH),
    ("BILL215896", None, BillIdFormat.TIMESTAMP),
    ("BILL21589", None, BillIdFormat.MISSING),
    ("", None, BillIdFormat.MISSING),
    (None, None, BillIdFormat.MISSING),
    ("invoice-3", None, BillIdFormat.MISSING),
])
def test_classify_bill_id(bill_id, number, expected):
    assert classify_bill_id(bill_id, number) == expected


def test_bill_number_must_be_an_int():
    bill = Bill.from_document(make_bill("x", "Bill001", True))
    assert bill.bill_number is None

    bill = Bill.from_document(make_bill("x", "Bill001", "1"))
    assert bill.bill_number is None


# ---------------------------------------------------------------------------
# ordering
# ---------------------------------------------------------------------------

def test_same_date_ties_break_on_document_id():
    ordered = sort_bills(load_bills(InMemoryStore({"bills": messy_bills()})))
    ids = [b.id for b in ordered]
    assert ids.index("a") + 1 == ids.index("b")


def test_bills_without_a_valid_date_go_last():
    bills = [Bill.from_document(d) for d in messy_bills()]
    bills.append(Bill.from_document(make_bill("g", "#103", None, "not a date")))

    ordered = sort_bills(bills)
    assert [b.id for b in ordered[-2:]] == ["e", "g"]


def test_diagnose_counts_formats(messy_store):
    result = diagnose_bills(messy_store)

    assert result.total == 6
    assert result.formats[BillIdFormat.HASH] == 2
    assert result.formats[BillIdFormat.TIMESTAMP] == 1
    assert result.formats[BillIdFormat.CORRECT] == 2
    assert result.formats[BillIdFormat.MISSING] == 1
    assert result.duplicates == []
    assert result.invalid_dates == ["e"]


# ---------------------------------------------------------------------------
# full migration
# ---------------------------------------------------------------------------

def test_plan_is_deterministic():
    docs = messy_bills()
    first = plan_migration([Bill.from_document(d) for d in docs])

    random.Random(7).shuffle(docs)
    second = plan_migration([Bill.from_document(d) for d in docs])

    assert [(c.id, c.new_bill_id) for c in first] == [(c.id, c.new_bill_id) for c in second]


def test_migration_numbers_densely_in_date_order(messy_store):
    result = execute_migration(messy_store)
    assert result.failed == 0

    bills = load_bills(messy_store)
    numbers = sorted(b.bill_number for b in bills)
    assert numbers == list(range(1, len(bills) + 1))
    assert all(b.bill_id == canonicalize(b.bill_number) for b in bills)

    by_number = sorted(bills, key=lambda b: b.bill_number)
    dated = [coerce_datetime(b.date) for b in by_number if coerce_datetime(b.date)]
    assert dated == sorted(dated)

    assert [b.id for b in by_number] == ["f", "a", "b", "c", "d", "e"]


def test_migration_is_idempotent(messy_store):
    execute_migration(messy_store)
    writes = len(messy_store.updates)

    assert preview_migration(messy_store).changes == []

    second = execute_migration(messy_store)
    assert second.success == 0 and second.failed == 0
    assert len(messy_store.updates) == writes


def test_migration_continues_after_a_failed_write(messy_store):
    messy_store.fail_ids.add("c")

    result = execute_migration(messy_store)

    assert result.failed == 1
    assert result.success == len(result.changes) - 1
    failed = [o for o in result.outcomes if not o.ok]
    assert [o.id for o in failed] == ["c"]
    assert messy_store.get("bills", "d")["billId"] == "Bill005"
    assert messy_store.get("bills", "c")["billId"] is None


def test_already_correct_bills_are_not_rewritten():
    store = InMemoryStore({"bills": [
        make_bill("a", "Bill001", 1, utc(2024, 1, 1)),
        make_bill("b", "#5", None, utc(2024, 1, 2)),
    ]})

    plan = preview_migration(store)

    assert [c.id for c in plan.changes] == ["b"]
    assert plan.changes[0].new_bill_id == "Bill002"


# ---------------------------------------------------------------------------
# duplicates
# ---------------------------------------------------------------------------

def duplicate_store():
    labels = {3: 5, 5: 3, 7: 5}
    docs = []
    for n in range(1, 11):
        label = labels.get(n, n)
        docs.append(make_bill(f"b{n:02d}", canonicalize(label), label, utc(2024, 1, n)))
    return InMemoryStore({"bills": docs})


def test_diagnose_duplicates_lists_every_holder():
    found = diagnose_duplicates(duplicate_store())
    assert [(s.id, s.bill_id) for s in found] == [("b03", "Bill005"), ("b07", "Bill005")]


def test_only_the_later_duplicate_is_renumbered():
    store = duplicate_store()
    before = {d["id"]: d["billId"] for d in store.fetch_all("bills")}

    result = fix_duplicates(store)

    assert (result.success, result.failed) == (1, 0)
    assert [(f.doc_id, f.old_bill_id, f.new_bill_id) for f in result.fixes] == [("b07", "Bill005", "Bill011")]
    after = {d["id"]: d["billId"] for d in store.fetch_all("bills")}
    changed = {k for k in before if before[k] != after[k]}
    assert changed == {"b07"}
    assert store.get("bills", "b07")["billNumber"] == 11
    assert "updatedAt" in store.get("bills", "b07")


def test_duplicate_fix_runs_clean_a_second_time():
    store = duplicate_store()
    fix_duplicates(store)

    again = fix_duplicates(store)

    assert (again.success, again.failed, again.fixes, again.outcomes) == (0, 0, [], [])


def test_renumbered_duplicates_never_collide_with_kept_labels():
    bills = [
        Bill.from_document(make_bill("a", "Bill009", 9, utc(2024, 1, 1))),
        Bill.from_document(make_bill("b", "Bill009", 9, utc(2024, 1, 2))),
        Bill.from_document(make_bill("c", "Bill009", 9, utc(2024, 1, 3))),
        Bill.from_document(make_bill("d", "Bill002", 2, utc(2024, 1, 4))),
    ]

    plan = plan_duplicate_fix(bills)

    assert [(f.doc_id, f.new_bill_id) for f in plan] == [("b", "Bill010"), ("c", "Bill011")]


def test_renumbering_skips_labels_whose_bill_number_is_unset():
    bills = [
        Bill.from_document(make_bill("a", "Bill003", 3, utc(2024, 1, 1))),
        Bill.from_document(make_bill("b", "Bill003", 3, utc(2024, 1, 2))),
        Bill.from_document(make_bill("c", "Bill004", None, utc(2024, 1, 3))),
    ]

    plan = plan_duplicate_fix(bills)

    assert [(f.doc_id, f.new_bill_id, f.new_bill_number) for f in plan] == [("b", "Bill005", 5)]


def test_failed_duplicate_write_reports_its_reason():
    store = duplicate_store()
    store.fail_ids.add("b07")

    result = fix_duplicates(store)

    assert (result.success, result.failed) == (0, 1)
    assert result.fixes == []
    assert [(o.id, o.ok, o.message) for o in result.outcomes] == [("b07", False, "Update b07 failed")]
    assert store.get("bills", "b07")["billId"] == "Bill005"


# ---------------------------------------------------------------------------
# stored bills the models can't fully parse
# ---------------------------------------------------------------------------

def odd_store():
    return InMemoryStore({"bills": [
        make_bill("a", "Bill002", 2, utc(2024, 1, 1), paymentRecords=[{"id": "p", "type": "upi", "amount": 10}]),
        make_bill("b", "#7", None, utc(2024, 1, 2), items=[
            {"id": "p1", "description": "Lehenga", "subItems": [
                {"id": "s1", "description": "Lining", "parentId": "old"},
            ]},
        ]),
        make_bill("c", "Bill002", 2, utc(2024, 1, 3), items=[
            {"id": "x", "subItems": [{"id": "y", "subItems": [{"id": "z"}]}]},
        ]),
    ]})


def test_unknown_payment_mode_and_stale_parent_id_still_load():
    bills = {b.id: b for b in load_bills(odd_store())}

    assert bills["a"].payment_records[0].type is None
    assert bills["a"].payment_records[0].amount == 10
    assert bills["b"].items[0].sub_items[0].parent_id == "p1"


def test_diagnose_and_preview_survive_unparseable_bills():
    store = odd_store()

    diagnosis = diagnose_bills(store)
    plan = preview_migration(store)

    assert diagnosis.total == 3
    assert diagnosis.unreadable == ["c"]
    assert diagnosis.duplicates == ["Bill002"]
    assert [(c.id, c.new_bill_id) for c in plan.changes] == [("a", "Bill001"), ("b", "Bill002"), ("c", "Bill003")]


def test_unparseable_duplicate_is_still_renumbered():
    store = odd_store()

    result = fix_duplicates(store)

    assert [(f.doc_id, f.new_bill_id) for f in result.fixes] == [("c", "Bill003")]
    assert store.get("bills", "c")["items"][0]["subItems"][0]["subItems"] == [{"id": "z"}]


# ---------------------------------------------------------------------------
# verification and numbering of new bills
# ---------------------------------------------------------------------------

def test_list_bills_by_number_highest_first(messy_store):
    listed = list_bills_by_number(messy_store)
    assert [s.bill_number for s in listed] == [7, 1, None, None, None, None]


def test_next_bill_number():
    assert next_bill_number(InMemoryStore()) == 1
    assert next_bill_number(duplicate_store()) == 11
    assert next_bill_number(InMemoryStore({"bills": [make_bill("a", "Bill012", None, utc(2024, 1, 1))]})) == 13
