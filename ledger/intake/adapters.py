"""
具体 Adapter 实现。

新增记录来源：在此文件添加一个类，然后在 factory.py 注册即可。

已注册来源：
  payment      — PaymentAdapter      (payments 集合，直接付款 / 手工录入的费用)
  appointment  — AppointmentAdapter  (appointments 集合，挂号费)
  invoice      — InvoiceAdapter      (invoices 集合，账单)
  room_charge  — RoomChargeAdapter   (room_charges 集合，床位费)
"""

from typing import Optional

from ..records import AppointmentCharge, Invoice, Payment, RoomCharge, ZERO
from .base import (
    BaseRecordAdapter,
    clean_text,
    first_present,
    normalize_category,
    normalize_status,
    parse_amount,
    parse_timestamp,
)


# ── PaymentAdapter ─────────────────────────────────────────────────────────
#
# 外部格式示例:
# {
#   "id":            "PAY-1719900000-1",
#   "patientId":     "KBR-IP-2025-001",
#   "patientName":   "Basha",
#   "amount":        2000,
#   "paymentMethod": "Cash",
#   "date":          "2025-07-02",
#   "type":          "payment",          ← "charge" 表示这是一笔费用而不是付款
#   "appointmentId": "APT-123",          ← 可选，交叉引用
#   "transactionId": "TXN-998",
#   "status":        "paid"
# }

class PaymentAdapter(BaseRecordAdapter):
    kind = "payment"

    def transform(self) -> Payment:
        doc = self._document
        entry_type = "charge" if clean_text(doc.get("type")) == "charge" else "payment"

        return Payment(
            **self._parsed,
            amount=parse_amount(doc.get("amount"), "amount") or ZERO,
            date=parse_timestamp(first_present(doc, "date", "paymentDate")),
            status=normalize_status(first_present(doc, "status", "paymentStatus")),
            reference_id=clean_text(first_present(doc, "appointmentId", "invoiceId")),
            category=normalize_category(doc.get("category")),
            entry_type=entry_type,
            transaction_id=clean_text(doc.get("transactionId")),
        )


# ── AppointmentAdapter ─────────────────────────────────────────────────────
#
# 外部格式示例:
# {
#   "id":              "APT-123",
#   "patientName":     "Ravi Kumar",
#   "patientPhone":    "+91 98765 43210",
#   "doctorName":      "Dr. Rao",
#   "department":      "Cardiology",
#   "service":         "ECG Consultation",
#   "appointmentDate": "2025-07-01",
#   "fees":            500,              ← 也可能叫 amount / totalAmount / consultationFee
#   "paymentStatus":   "paid",           ← status 字段表示预约状态，不是付款状态
#   "paymentMode":     "Online"
# }

class AppointmentAdapter(BaseRecordAdapter):
    kind = "appointment"

    def transform(self) -> AppointmentCharge:
        doc = self._document
        amount = parse_amount(
            first_present(doc, "fees", "amount", "totalAmount", "consultationFee"), "fees"
        )
        doctor = clean_text(doc.get("doctorName"))
        service = clean_text(first_present(doc, "service", "serviceName"))

        parsed = dict(self._parsed)
        if parsed["description"] is None:
            parsed["description"] = _appointment_description(service, doctor)

        return AppointmentCharge(
            **parsed,
            amount=amount or ZERO,
            date=parse_timestamp(first_present(doc, "appointmentDate", "date")),
            status=normalize_status(first_present(doc, "paymentStatus", "status")),
            category="consultation",
            doctor_name=doctor,
            department=clean_text(doc.get("department")),
            service=service,
        )


def _appointment_description(service: Optional[str], doctor: Optional[str]) -> str:
    service = service or "Medical Service"
    if doctor:
        return f"Consultation: {service} with {doctor}"
    return f"Consultation: {service}"


# ── InvoiceAdapter ─────────────────────────────────────────────────────────
#
# 外部格式示例:
# {
#   "id":            "inv-01",
#   "invoiceNumber": "KBR-INV-202507-123456",
#   "appointmentId": "APT-123",
#   "patientId":     "KBR-IP-2025-001",
#   "totalAmount":   500,                 ← 也可能只有 subtotal / amount
#   "issueDate":     "2025-07-01",
#   "serviceType":   "Test",              ← Test / Service / Medication / Room
#   "status":        "paid",
#   "paymentMode":   "Cash"
# }

class InvoiceAdapter(BaseRecordAdapter):
    kind = "invoice"

    def transform(self) -> Invoice:
        doc = self._document
        amount = parse_amount(first_present(doc, "totalAmount", "amount", "subtotal"), "totalAmount")

        return Invoice(
            **self._parsed,
            amount=amount or ZERO,
            date=parse_timestamp(first_present(doc, "issueDate", "paymentDate", "date")),
            status=normalize_status(first_present(doc, "status", "paymentStatus")),
            reference_id=clean_text(doc.get("appointmentId")),
            category=normalize_category(first_present(doc, "category", "serviceType")),
            invoice_number=clean_text(doc.get("invoiceNumber")),
        )


# ── RoomChargeAdapter ──────────────────────────────────────────────────────
#
# 外部格式示例:
# {
#   "id":          "room-12-KBR-IP-2025-001",
#   "patientId":   "KBR-IP-2025-001",
#   "roomNumber":  "12",
#   "dailyRate":   1500,
#   "days":        3,                    ← 没有 cost 时 amount = dailyRate × days
#   "cost":        4500,
#   "checkInDate": "2025-07-01"
# }
#
# 与其他来源的主要差异：
#   1. 金额可能只给单价和天数
#   2. 日期字段叫 checkInDate / allocatedDate

class RoomChargeAdapter(BaseRecordAdapter):
    kind = "room_charge"

    @staticmethod
    def _parse_days(value) -> Optional[int]:
        text = clean_text(value)
        if text is None:
            return None
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return None

    def transform(self) -> RoomCharge:
        doc = self._document
        daily_rate = parse_amount(doc.get("dailyRate"), "dailyRate")
        days = self._parse_days(doc.get("days"))

        amount = parse_amount(first_present(doc, "cost", "amount", "totalAmount"), "cost")
        if amount is None and daily_rate is not None:
            amount = daily_rate * days if days else daily_rate

        parsed = dict(self._parsed)
        room_number = clean_text(doc.get("roomNumber"))
        if parsed["description"] is None and room_number:
            parsed["description"] = f"Room {room_number} charges"

        return RoomCharge(
            **parsed,
            amount=amount or ZERO,
            date=parse_timestamp(first_present(doc, "date", "checkInDate", "allocatedDate")),
            status=normalize_status(doc.get("status")),
            category="room",
            daily_rate=daily_rate,
            days=days,
            room_number=room_number,
        )
