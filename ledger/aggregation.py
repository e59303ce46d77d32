"""
Ledger aggregation：把去重后的记录汇总成一个患者的账本。

aggregate() 是纯函数：同样的输入永远得到相等的 Ledger。
账本只能通过「往原始记录里追加一条 → 重新 aggregate」来更新，
不允许原地修改已经算好的 Ledger，这样 total_paid 和 payments 永远不会对不上。
"""

from typing import Iterable

from .records import (
    ROLE_CHARGE,
    ROLE_PAYMENT,
    ZERO,
    CostBreakdown,
    Ledger,
    LedgerEntry,
    LedgerStatus,
    Patient,
    RawRecord,
    ledger_role,
)

BREAKDOWN_FIELDS = {
    "room": "room_charges",
    "medication": "medication_charges",
    "test": "test_charges",
    "consultation": "consultation_charges",
}


def partition(records: Iterable[RawRecord]) -> tuple[list[RawRecord], list[RawRecord]]:
    """Split records into (charges, payments); records with no ledger role are dropped."""
    charges, payments = [], []
    for record in records:
        role = ledger_role(record)
        if role == ROLE_CHARGE:
            charges.append(record)
        elif role == ROLE_PAYMENT:
            payments.append(record)
    return charges, payments


def classify(due_amount, total_paid) -> str:
    if due_amount <= 0:
        return LedgerStatus.FULLY_PAID
    if total_paid > 0:
        return LedgerStatus.PARTIALLY_PAID
    return LedgerStatus.PENDING


def cost_breakdown(charges: Iterable[RawRecord]) -> CostBreakdown:
    buckets = {name: ZERO for name in BREAKDOWN_FIELDS.values()}
    buckets["miscellaneous"] = ZERO
    for charge in charges:
        category = "room" if charge.kind == "room_charge" else charge.category
        bucket = BREAKDOWN_FIELDS.get(category, "miscellaneous")
        buckets[bucket] += charge.amount
    return CostBreakdown(**buckets)


def to_entry(record: RawRecord) -> LedgerEntry:
    origin = "appointment" if record.kind == "appointment" else "direct"
    if record.description:
        description = record.description
    else:
        description = "Appointment payment" if origin == "appointment" else "Payment"

    source_ids = (record.source_id,)
    if record.reference_id:
        source_ids += (record.reference_id,)

    return LedgerEntry(
        id=f"{origin}-{record.source_id}",
        amount=record.amount,
        method=record.method,
        date=record.effective_date,
        description=description,
        origin=origin,
        source_ids=source_ids,
    )


def order_entries(entries: Iterable[LedgerEntry]) -> tuple:
    """Newest first; equal dates by source id ascending; undated entries last."""
    by_source = sorted(entries, key=lambda entry: entry.source_ids[0])
    dated = [entry for entry in by_source if entry.date is not None]
    undated = [entry for entry in by_source if entry.date is None]
    # reverse=True 依然是稳定排序，同一时间的条目保持 source id 升序
    dated.sort(key=lambda entry: entry.date, reverse=True)
    return tuple(dated + undated)


def aggregate(patient: Patient, records: Iterable[RawRecord]) -> Ledger:
    charges, payments = partition(records)

    charge_total = sum((charge.amount for charge in charges), ZERO)
    total_paid = sum((payment.amount for payment in payments), ZERO)

    details = patient.payment_details
    if details is not None and details.total_amount is not None:
        total_amount = details.total_amount
    elif charges:
        total_amount = charge_total
    else:
        # 只有付款记录：总额只能从付款反推
        total_amount = total_paid

    due_amount = total_amount - total_paid

    ledger = Ledger(
        patient_id=patient.id,
        total_amount=total_amount,
        total_paid=total_paid,
        due_amount=due_amount,
        status=classify(due_amount, total_paid),
        payments=order_entries(to_entry(payment) for payment in payments),
        cost_breakdown=cost_breakdown(charges),
    )
    check_invariants(ledger)
    return ledger


def check_invariants(ledger: Ledger) -> None:
    entry_ids = [entry.id for entry in ledger.payments]
    assert len(entry_ids) == len(set(entry_ids)), f"duplicate ledger entries for {ledger.patient_id}"
    assert ledger.total_paid == sum((entry.amount for entry in ledger.payments), ZERO)
    assert ledger.due_amount == ledger.total_amount - ledger.total_paid
