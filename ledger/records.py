"""
账务引擎唯一认识的标准数据结构。

Raw record 是四种来源（payments / appointments / invoices / room_charges）
经 intake adapter 归一化之后的形态，用 `kind` 做判别字段。
Ledger / LedgerEntry / TimelineEvent 都是派生结果，每次查询重新计算，从不持久化。
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional, Union

ZERO = Decimal("0.00")

RecordStatus = Literal["paid", "pending", "due", "partial", "failed"]
ChargeCategory = Literal["room", "medication", "test", "consultation"]
EntryOrigin = Literal["direct", "appointment"]
TimelineKind = Literal["admission", "treatment", "test", "medication", "payment"]


class LedgerStatus:
    PENDING = "Pending"
    PARTIALLY_PAID = "PartiallyPaid"
    FULLY_PAID = "FullyPaid"


def quantize(value) -> Decimal:
    """Coerce a numeric value to a 2-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value))
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# ── Raw records ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class _RawRecordBase:
    source_id: str
    amount: Decimal
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None
    date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    method: Optional[str] = None
    description: Optional[str] = None
    status: Optional[RecordStatus] = None
    reference_id: Optional[str] = None      # 关联的另一笔交易（通常是 appointment id）
    category: Optional[ChargeCategory] = None

    @property
    def effective_date(self) -> Optional[datetime]:
        return self.date or self.created_at


@dataclass(frozen=True)
class Payment(_RawRecordBase):
    kind: Literal["payment"] = "payment"
    entry_type: Literal["payment", "charge"] = "payment"
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class AppointmentCharge(_RawRecordBase):
    kind: Literal["appointment"] = "appointment"
    doctor_name: Optional[str] = None
    department: Optional[str] = None
    service: Optional[str] = None


@dataclass(frozen=True)
class Invoice(_RawRecordBase):
    kind: Literal["invoice"] = "invoice"
    invoice_number: Optional[str] = None


@dataclass(frozen=True)
class RoomCharge(_RawRecordBase):
    kind: Literal["room_charge"] = "room_charge"
    daily_rate: Optional[Decimal] = None
    days: Optional[int] = None
    room_number: Optional[str] = None


RawRecord = Union[Payment, AppointmentCharge, Invoice, RoomCharge]


# ── Patient ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Medication:
    name: str
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    start_date: Optional[datetime] = None
    doctor: Optional[str] = None


@dataclass(frozen=True)
class PaymentDetails:
    """
    登记时一次性录入的付款信息。

    total_amount 存在时就是账单总额；payments 是登记时随附的首付款，
    按 direct payment 处理。
    """

    total_amount: Optional[Decimal] = None
    payments: tuple = ()


@dataclass(frozen=True)
class Patient:
    id: str
    name: str
    phone: str = ""
    payment_details: Optional[PaymentDetails] = None
    admission_date: Optional[datetime] = None
    condition: Optional[str] = None
    doctor: Optional[str] = None
    medications: tuple = ()
    # 病历里直接记账的费用（药品 / 检查 / 会诊），按 charge 处理
    charges: tuple = ()


# ── Derived views ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LedgerEntry:
    id: str
    amount: Decimal
    method: Optional[str]
    date: Optional[datetime]
    description: str
    origin: EntryOrigin
    source_ids: tuple = ()      # 仅用于审计排查，不参与匹配


@dataclass(frozen=True)
class CostBreakdown:
    room_charges: Decimal = ZERO
    medication_charges: Decimal = ZERO
    test_charges: Decimal = ZERO
    consultation_charges: Decimal = ZERO
    miscellaneous: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.room_charges
            + self.medication_charges
            + self.test_charges
            + self.consultation_charges
            + self.miscellaneous
        )


@dataclass(frozen=True)
class Ledger:
    patient_id: str
    total_amount: Decimal
    total_paid: Decimal
    due_amount: Decimal
    status: str
    payments: tuple = ()
    cost_breakdown: CostBreakdown = field(default_factory=CostBreakdown)
    stale: bool = False


@dataclass(frozen=True)
class TimelineEvent:
    kind: TimelineKind
    date: Optional[datetime]
    description: str
    doctor: Optional[str] = None


@dataclass(frozen=True)
class OutstandingBalance:
    patient_id: str
    patient_name: str
    due_amount: Decimal
    total_amount: Decimal = ZERO
    total_paid: Decimal = ZERO
    last_payment_date: Optional[datetime] = None


# ── Ledger role ────────────────────────────────────────────────────────────

ROLE_CHARGE = "charge"
ROLE_PAYMENT = "payment"

UNSETTLED_STATUSES = frozenset({"pending", "due", "failed"})


def ledger_role(record: RawRecord) -> Optional[str]:
    """
    一条记录在账本里算费用（charge）还是付款（payment），两者都不算时返回 None。

    - Invoice / RoomCharge            → charge
    - Payment, type == "charge"       → charge
    - Payment, 状态不是 pending/due/failed → payment
    - AppointmentCharge, status == paid → payment
    """
    if record.kind == "invoice" or record.kind == "room_charge":
        return ROLE_CHARGE
    if record.kind == "payment":
        if record.entry_type == "charge":
            return ROLE_CHARGE
        return None if record.status in UNSETTLED_STATUSES else ROLE_PAYMENT
    if record.kind == "appointment":
        return ROLE_PAYMENT if record.status == "paid" else None
    raise ValueError(f"Unknown record kind: {record.kind!r}")
