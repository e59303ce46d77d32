"""
Unit tests for dedupe().

1. source_id 相同 → 保留第一条
2. (patient, amount, date, method) 相同 → 保留第一条（带不同 transaction_id 的除外）
3. 交叉引用相同（付款指向 appointment）→ 保留直接付款
4. 费用和付款之间不互相去重
"""
from datetime import datetime, timezone
from decimal import Decimal

from ledger.dedup import dedupe
from tests.factories import AppointmentChargeFactory, InvoiceFactory, PaymentFactory

WHEN = datetime(2025, 7, 2, tzinfo=timezone.utc)


class TestDedupe:

    def test_same_source_id_collapses(self):
        first = PaymentFactory(source_id='PAY-1', amount=Decimal('2000.00'))
        copy = PaymentFactory(source_id='PAY-1', amount=Decimal('2000.00'))

        assert dedupe([first, copy]) == [first]

    def test_same_transaction_tuple_collapses(self):
        first = PaymentFactory(source_id='PAY-1', amount=Decimal('750.00'), date=WHEN, method='UPI')
        second = PaymentFactory(source_id='PAY-2', amount=Decimal('750.00'), date=WHEN, method='UPI')

        assert dedupe([first, second]) == [first]

    def test_different_patient_ids_are_kept(self):
        a = PaymentFactory(patient_id='A', amount=Decimal('750.00'), date=WHEN, method='UPI')
        b = PaymentFactory(patient_id='B', amount=Decimal('750.00'), date=WHEN, method='UPI')

        assert dedupe([a, b]) == [a, b]

    def test_different_method_is_kept(self):
        cash = PaymentFactory(amount=Decimal('750.00'), date=WHEN, method='Cash')
        card = PaymentFactory(amount=Decimal('750.00'), date=WHEN, method='Card')

        assert len(dedupe([cash, card])) == 2

    def test_payment_referencing_appointment_wins(self):
        appointment = AppointmentChargeFactory(source_id='APT-9')
        payment = PaymentFactory(reference_id='APT-9', amount=Decimal('500.00'))

        assert dedupe([payment, appointment]) == [payment]

    def test_charge_and_payment_for_same_appointment_both_kept(self):
        invoice = InvoiceFactory(reference_id='APT-9', status='paid', amount=Decimal('500.00'), date=WHEN, method='Cash')
        payment = PaymentFactory(reference_id='APT-9', amount=Decimal('500.00'), date=WHEN, method='Cash')

        assert dedupe([payment, invoice]) == [payment, invoice]

    def test_undated_records_only_collapse_by_id(self):
        a = PaymentFactory(source_id='PAY-1', date=None, created_at=None)
        b = PaymentFactory(source_id='PAY-2', date=None, created_at=None)

        assert dedupe([a, b]) == [a, b]

    def test_created_at_used_when_date_missing(self):
        a = PaymentFactory(source_id='PAY-1', date=None, created_at=WHEN)
        b = PaymentFactory(source_id='PAY-2', date=WHEN)

        assert dedupe([a, b]) == [a]

    def test_keeps_input_order(self):
        records = [PaymentFactory() for _ in range(4)]

        assert dedupe(records) == records

    def test_distinct_transaction_ids_are_kept(self):
        first = PaymentFactory(amount=Decimal('500.00'), date=WHEN, method='Cash', transaction_id='TXN-1')
        second = PaymentFactory(amount=Decimal('500.00'), date=WHEN, method='Cash', transaction_id='TXN-2')

        assert dedupe([first, second]) == [first, second]

    def test_same_transaction_id_collapses(self):
        first = PaymentFactory(amount=Decimal('500.00'), method='Cash', transaction_id='TXN-1')
        copy = PaymentFactory(amount=Decimal('500.00'), method='Online', transaction_id='TXN-1')

        assert dedupe([first, copy]) == [first]

    def test_owner_replaces_missing_patient_id(self):
        by_id = PaymentFactory(patient_id='P1', amount=Decimal('750.00'), date=WHEN, method='UPI')
        by_name = PaymentFactory(
            patient_id=None, patient_name='Basha', amount=Decimal('750.00'), date=WHEN, method='UPI',
        )

        assert dedupe([by_id, by_name]) == [by_id, by_name]
        assert dedupe([by_id, by_name], patient_id='P1') == [by_id]
