"""
RecordStore — 账务引擎依赖的外部存储接口。

引擎只读患者和四类原始记录，只写一种东西：新的付款记录。
存储技术（ORM / 内存 / 文档库）对引擎不可见；读写失败统一抛 CollaboratorUnavailable。

每个新存储只需：
1. 继承 RecordStore
2. 实现下面的抽象方法（返回原始 dict 文档即可）
3. 在 factory.py 的 _build_registry() 注册一行
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from ..exceptions import ValidationError
from ..intake import get_adapter
from ..intake.adapters import PaymentAdapter
from ..intake.base import clean_text, first_present, parse_amount, parse_timestamp
from ..records import Medication, Patient, PaymentDetails, RawRecord

logger = logging.getLogger(__name__)

PAYMENTS = "payments"
APPOINTMENTS = "appointments"
INVOICES = "invoices"
ROOM_CHARGES = "room_charges"
MEDICAL_HISTORY = "medical_history"
REPORTS = "reports"

# 集合名 → adapter kind
RECORD_COLLECTIONS = {
    PAYMENTS: "payment",
    APPOINTMENTS: "appointment",
    INVOICES: "invoice",
    ROOM_CHARGES: "room_charge",
}


def normalize_documents(collection: str, documents: Iterable[tuple]) -> list[RawRecord]:
    """
    (source_id, document) → RawRecord。

    格式不合法的文档跳过并记 warning：一条坏数据不能让整个账本读不出来。
    """
    kind = RECORD_COLLECTIONS[collection]
    records = []
    for source_id, document in documents:
        try:
            records.append(get_adapter(kind, document, source_id=source_id).process())
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s document %s: %s (%s)",
                collection, source_id, exc.message, exc.detail,
            )
    return records


# 病历里直接记账的费用：(文档字段, 分类, 金额字段, 名称字段)
EMBEDDED_CHARGES = (
    ("medications", "medication", ("cost",), ("name",)),
    ("tests", "test", ("cost", "fee"), ("testType", "name", "title")),
    ("consultations", "consultation", ("fee", "cost"), ("doctor", "doctorName")),
)


def embedded_charges(patient_id: str, document: dict) -> tuple:
    """
    medications[].cost / tests[].cost|fee / consultations[].fee|cost → 费用记录。

    source_id 由患者 id、分类和下标决定，同一份病历每次读出来都一样。
    没有金额的条目不记账。不带日期，只按 source_id 去重。
    """
    charges = []
    for field_name, category, amount_keys, name_keys in EMBEDDED_CHARGES:
        for index, item in enumerate(document.get(field_name) or (), start=1):
            amount = first_present(item, *amount_keys)
            if amount is None:
                continue
            label = clean_text(first_present(item, *name_keys)) or category
            charge = {
                "patientId": patient_id,
                "amount": amount,
                "type": "charge",
                "category": category,
                "description": f"{category.capitalize()}: {label}",
            }
            source_id = f"{patient_id}-{category}-{index}"
            charges.append(PaymentAdapter(charge, source_id=source_id).process())
    return tuple(charges)


def patient_from_document(document: dict) -> Patient:
    """
    Raises:
        ValidationError: 没有 id，或金额字段无法解析
    """
    patient_id = clean_text(document.get("id"))
    if patient_id is None:
        raise ValidationError(
            message="Patient document has no id.",
            code="INVALID_PATIENT",
            detail={"name": document.get("name")},
        )

    payment_details = None
    details = document.get("paymentDetails")
    if details:
        upfront = []
        for index, payment in enumerate(details.get("payments") or (), start=1):
            payment = {**payment, "patientId": patient_id}
            source_id = clean_text(payment.get("id")) or f"{patient_id}-upfront-{index}"
            upfront.append(PaymentAdapter(payment, source_id=source_id).process())
        payment_details = PaymentDetails(
            total_amount=parse_amount(details.get("totalAmount"), "paymentDetails.totalAmount"),
            payments=tuple(upfront),
        )

    medications = tuple(
        Medication(
            name=clean_text(med.get("name")) or "medication",
            dosage=clean_text(med.get("dosage")),
            instructions=clean_text(med.get("instructions")),
            start_date=parse_timestamp(med.get("startDate")),
            doctor=clean_text(med.get("doctor")),
        )
        for med in document.get("medications") or ()
    )

    return Patient(
        id=patient_id,
        name=clean_text(document.get("name")) or "",
        phone=clean_text(document.get("phone")) or "",
        payment_details=payment_details,
        admission_date=parse_timestamp(document.get("admissionDate")),
        condition=clean_text(document.get("condition")),
        doctor=clean_text(document.get("doctor")),
        medications=medications,
        charges=embedded_charges(patient_id, document),
    )


class RecordStore(ABC):

    # ── 必须实现 ───────────────────────────────────────────────────────────

    @abstractmethod
    def patient_documents(self) -> list[dict]:
        """所有患者文档。"""

    @abstractmethod
    def documents(self, collection: str, patient_id: Optional[str] = None) -> list[tuple]:
        """
        某个集合里的 (source_id, document) 列表，按写入顺序。

        patient_id 只按文档里的 patientId 字段过滤；
        靠姓名 / 电话才能认领的记录要传 None 取全量。
        """

    @abstractmethod
    def insert(self, collection: str, document: dict) -> str:
        """写入一条文档，返回分配的 source_id。"""

    # ── 对外接口 ───────────────────────────────────────────────────────────

    def list_patients(self) -> list[Patient]:
        """格式不合法的患者文档跳过并记 warning，不影响其他患者的账本。"""
        patients = []
        for document in self.patient_documents():
            try:
                patients.append(patient_from_document(document))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed patient document %s: %s (%s)",
                    document.get("id"), exc.message, exc.detail,
                )
        return patients

    def list_payments(self, patient_id: Optional[str] = None) -> list[RawRecord]:
        return normalize_documents(PAYMENTS, self.documents(PAYMENTS, patient_id))

    def list_appointments(self, patient_id: Optional[str] = None) -> list[RawRecord]:
        return normalize_documents(APPOINTMENTS, self.documents(APPOINTMENTS, patient_id))

    def list_invoices(self, patient_id: Optional[str] = None) -> list[RawRecord]:
        return normalize_documents(INVOICES, self.documents(INVOICES, patient_id))

    def list_room_charges(self, patient_id: Optional[str] = None) -> list[RawRecord]:
        return normalize_documents(ROOM_CHARGES, self.documents(ROOM_CHARGES, patient_id))

    def list_medical_history(self, patient_id: str) -> list[dict]:
        return [document for _, document in self.documents(MEDICAL_HISTORY, patient_id)]

    def list_reports(self, patient_id: str) -> list[dict]:
        return [document for _, document in self.documents(REPORTS, patient_id)]

    def list_records(self) -> list[RawRecord]:
        """
        全部四类原始记录。

        顺序即去重优先级：直接付款在前，挂号费派生的记录在后。
        """
        return (
            self.list_payments()
            + self.list_appointments()
            + self.list_invoices()
            + self.list_room_charges()
        )

    def append_payment(self, data: dict) -> RawRecord:
        source_id = self.insert(PAYMENTS, data)
        return PaymentAdapter(data, source_id=source_id).process()
