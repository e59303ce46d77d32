"""
Ledger service — 账务引擎对外的唯一入口。

流程：store 读全量记录 → identity matching → dedupe → aggregate / build_timeline。
Ledger 永远从当前全量原始记录重新计算；record_payment 只往 store 追加一条付款，
然后整体重算，从不修改已有的 LedgerEntry。

Raises PatientNotFound / ValidationError / CollaboratorUnavailable，
View 层不需要处理，exception_handler 统一兜底。
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.utils import timezone

from .aggregation import aggregate
from .dedup import dedupe
from .exceptions import CollaboratorUnavailable, PatientNotFound, ValidationError
from .intake.base import clean_text, parse_timestamp
from .matching import IdentityMatcher
from .records import Ledger, OutstandingBalance, Patient, RawRecord, TimelineEvent, quantize
from .store import RecordStore, get_record_store
from .timeline import build_timeline

logger = logging.getLogger(__name__)


def validate_payment_input(data: dict, require_method: bool = True) -> dict:
    """
    校验 record_payment 的入参，返回归一化后的字段。

    不校验「付款金额 ≤ 欠款」：超额付款在账本里是合法的（due 为负），
    是否拦截由前端决定。
    """
    errors = []

    amount = None
    raw_amount = data.get('amount')
    if raw_amount is None or raw_amount == '':
        errors.append({'field': 'amount', 'message': 'Amount is required.'})
    else:
        try:
            amount = quantize(Decimal(str(raw_amount)))
        except InvalidOperation:
            errors.append({'field': 'amount', 'message': f'Amount is not a number: {raw_amount!r}.'})
        else:
            if not amount.is_finite() or amount <= 0:
                errors.append({'field': 'amount', 'message': 'Amount must be greater than zero.'})

    method = clean_text(data.get('method'))
    if require_method and method is None:
        errors.append({'field': 'method', 'message': 'Payment method is required.'})

    paid_at = None
    if data.get('date'):
        paid_at = parse_timestamp(data['date'])
        if paid_at is None:
            errors.append({'field': 'date', 'message': f"Unrecognized date: {data['date']!r}."})

    if errors:
        raise ValidationError(
            message='Payment validation failed.',
            code='INVALID_PAYMENT',
            detail={'errors': errors},
        )

    return {
        'amount': amount,
        'method': method,
        'date': paid_at or timezone.now(),
        'description': clean_text(data.get('description')) or 'Payment',
        'transaction_id': clean_text(data.get('transaction_id')),
    }


def new_transaction_id(now: datetime) -> str:
    return f"TXN{now:%Y%m%d%H%M%S}-{uuid.uuid4().hex[:8].upper()}"


def patient_records(patient: Patient) -> list[RawRecord]:
    """登记时随附的首付款 + 病历里直接记账的费用。"""
    records = list(patient.charges)
    if patient.payment_details is not None:
        records = list(patient.payment_details.payments) + records
    return records


def last_payment_date(ledger: Ledger) -> Optional[datetime]:
    # payments 已按时间倒序
    return next((entry.date for entry in ledger.payments if entry.date is not None), None)


class LedgerService:

    def __init__(self, store: Optional[RecordStore] = None, require_method: Optional[bool] = None):
        self._store = store if store is not None else get_record_store()
        if require_method is None:
            require_method = getattr(settings, 'LEDGER_REQUIRE_PAYMENT_METHOD', True)
        self._require_method = require_method
        # 每个患者最近一次成功算出的账本，store 不可用时降级返回
        self._last_good: dict[str, Ledger] = {}

    # ── internal ──────────────────────────────────────────────────────────

    def _snapshot(self) -> tuple[list[Patient], list[RawRecord]]:
        return self._store.list_patients(), self._store.list_records()

    @staticmethod
    def _find(patients: list[Patient], patient_id: str) -> Patient:
        for patient in patients:
            if patient.id == patient_id:
                return patient
        raise PatientNotFound(patient_id)

    def _compute(self, patient: Patient, matcher: IdentityMatcher, records: list[RawRecord]) -> Ledger:
        owned = matcher.match(patient, patient_records(patient) + records)
        ledger = aggregate(patient, dedupe(owned, patient.id))
        self._last_good[patient.id] = ledger
        return ledger

    def _read_or_empty(self, reader, patient_id: str, label: str) -> list[dict]:
        try:
            return reader(patient_id)
        except CollaboratorUnavailable as exc:
            logger.warning("Timeline for %s built without %s: %s", patient_id, label, exc.message)
            return []

    # ── public API ────────────────────────────────────────────────────────

    def get_ledger(self, patient_id: str) -> Ledger:
        try:
            patients, records = self._snapshot()
        except CollaboratorUnavailable:
            cached = self._last_good.get(patient_id)
            if cached is None:
                raise
            logger.warning("Record store unavailable; serving last computed ledger for %s", patient_id)
            return replace(cached, stale=True)

        patient = self._find(patients, patient_id)
        return self._compute(patient, IdentityMatcher(patients), records)

    def get_timeline(self, patient_id: str) -> list[TimelineEvent]:
        patients, records = self._snapshot()
        patient = self._find(patients, patient_id)
        ledger = self._compute(patient, IdentityMatcher(patients), records)

        medical_history = self._read_or_empty(self._store.list_medical_history, patient_id, 'medical history')
        reports = self._read_or_empty(self._store.list_reports, patient_id, 'reports')
        return build_timeline(patient, medical_history, reports, ledger.payments)

    def record_payment(self, patient_id: str, payment_input: dict) -> Ledger:
        payment = validate_payment_input(payment_input, require_method=self._require_method)
        patient = self._find(self._store.list_patients(), patient_id)

        transaction_id = payment['transaction_id']
        if transaction_id and any(
            record.transaction_id == transaction_id for record in self._store.list_payments()
        ):
            # transactionId 已经记过账
            raise ValidationError(
                message=f"Transaction {transaction_id!r} is already recorded.",
                code='DUPLICATE_PAYMENT',
                detail={'transaction_id': transaction_id},
            )

        now = timezone.now()
        document = {
            'patientId': patient.id,
            'patientName': patient.name,
            'amount': str(payment['amount']),
            'paymentMethod': payment['method'],
            'date': payment['date'].isoformat(),
            'description': payment['description'],
            'type': 'payment',
            'status': 'paid',
            'createdAt': now.isoformat(),
            # transactionId 每笔唯一
            'transactionId': transaction_id or new_transaction_id(now),
        }

        stored = self._store.append_payment(document)
        logger.info(
            "Recorded payment %s of %s for patient %s via %s",
            stored.source_id, stored.amount, patient.id, stored.method,
        )
        return self.get_ledger(patient.id)

    def get_all_outstanding(self) -> list[OutstandingBalance]:
        patients, records = self._snapshot()
        matcher = IdentityMatcher(patients)

        embedded = [record for patient in patients for record in patient_records(patient)]
        grouped = matcher.partition(embedded + records)

        outstanding = []
        for patient in patients:
            ledger = aggregate(patient, dedupe(grouped.get(patient.id, []), patient.id))
            self._last_good[patient.id] = ledger
            if ledger.due_amount > 0:
                outstanding.append(OutstandingBalance(
                    patient_id=patient.id,
                    patient_name=patient.name,
                    due_amount=ledger.due_amount,
                    total_amount=ledger.total_amount,
                    total_paid=ledger.total_paid,
                    last_payment_date=last_payment_date(ledger),
                ))
        return outstanding


_service: Optional[LedgerService] = None


def get_ledger_service() -> LedgerService:
    """Process-wide service over the configured store, so the fallback cache survives requests."""
    global _service
    if _service is None:
        _service = LedgerService()
    return _service
