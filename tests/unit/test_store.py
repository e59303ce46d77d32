"""
Unit tests for RecordStore implementations and the store factory.
"""
import logging
from decimal import Decimal

import pytest

from ledger.exceptions import ValidationError
from ledger.store import InMemoryRecordStore, get_record_store
from ledger.store.base import PAYMENTS, patient_from_document
from ledger.store.orm import DjangoRecordStore
from tests.factories import DocumentFactory, PatientModelFactory


class TestPatientFromDocument:

    def test_full_document(self):
        patient = patient_from_document({
            'id': 'P1',
            'name': 'Basha',
            'phone': '+91 98765 43210',
            'admissionDate': '2025-07-01T08:00:00Z',
            'paymentDetails': {
                'totalAmount': '5,000',
                'payments': [{'id': 'UP-1', 'amount': 1000, 'paymentMethod': 'Cash'}, {'amount': 500}],
            },
            'medications': [{'name': 'Paracetamol', 'dosage': '500mg'}],
        })

        assert patient.payment_details.total_amount == Decimal('5000.00')
        upfront = patient.payment_details.payments
        assert [payment.source_id for payment in upfront] == ['UP-1', 'P1-upfront-2']
        assert all(payment.patient_id == 'P1' for payment in upfront)
        assert patient.medications[0].name == 'Paracetamol'
        assert patient.admission_date.isoformat() == '2025-07-01T08:00:00+00:00'

    def test_minimal_document(self):
        patient = patient_from_document({'id': 42, 'name': 'Anita'})

        assert patient.id == '42'
        assert patient.phone == ''
        assert patient.payment_details is None
        assert patient.medications == ()
        assert patient.charges == ()

    def test_missing_id_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            patient_from_document({'name': 'Anita'})

        assert exc_info.value.code == 'INVALID_PATIENT'

    def test_embedded_costs_become_charges(self):
        patient = patient_from_document({
            'id': 'P1',
            'name': 'Basha',
            'medications': [{'name': 'Paracetamol', 'cost': 120}, {'name': 'ORS'}],
            'tests': [{'testType': 'CBC', 'cost': 300, 'fee': 999}],
            'consultations': [{'doctor': 'Dr. Rao', 'fee': 500}],
        })

        assert [(charge.source_id, charge.category, charge.amount) for charge in patient.charges] == [
            ('P1-medication-1', 'medication', Decimal('120.00')),
            ('P1-test-1', 'test', Decimal('300.00')),
            ('P1-consultation-1', 'consultation', Decimal('500.00')),
        ]
        assert all(charge.entry_type == 'charge' for charge in patient.charges)
        assert patient.charges[1].description == 'Test: CBC'


class TestInMemoryRecordStore:

    def test_malformed_patient_skipped(self, memory_store, caplog):
        memory_store.add_patient({'id': 'P2', 'name': 'Anita', 'paymentDetails': {'totalAmount': 'abc'}})

        with caplog.at_level(logging.WARNING, logger='ledger.store.base'):
            patients = memory_store.list_patients()

        assert [patient.id for patient in patients] == ['P1']
        assert 'Skipping malformed patient document P2' in caplog.text

    def test_filters_by_patient_id(self, memory_store):
        memory_store.insert(PAYMENTS, {'id': 'PAY-X', 'patientName': 'Basha', 'amount': 10})

        assert [record.source_id for record in memory_store.list_payments('P1')] == ['PAY-2000']
        assert len(memory_store.list_payments()) == 2

    def test_list_records_order(self, memory_store):
        kinds = [record.kind for record in memory_store.list_records()]
        assert kinds == ['payment', 'invoice']

    def test_append_payment_assigns_source_id(self, memory_store):
        stored = memory_store.append_payment({'patientId': 'P1', 'amount': '250', 'paymentMethod': 'Cash'})

        assert stored.source_id
        assert stored.amount == Decimal('250.00')
        assert stored.source_id in [record.source_id for record in memory_store.list_payments('P1')]


@pytest.mark.django_db
class TestDjangoRecordStore:

    def test_reads_patients_and_documents(self):
        PatientModelFactory(id='P1', name='Basha', payment_details={'totalAmount': 5000})
        DocumentFactory(collection='payments', patient_id='P1', data={'patientId': 'P1', 'amount': 2000})
        DocumentFactory(collection='invoices', patient_id='P1', data={'id': 'INV-1', 'patientId': 'P1', 'totalAmount': 5000})

        store = DjangoRecordStore()
        patients = store.list_patients()
        records = store.list_records()

        assert [patient.id for patient in patients] == ['P1']
        assert patients[0].payment_details.total_amount == Decimal('5000.00')
        assert [record.kind for record in records] == ['payment', 'invoice']
        # 没有 id 字段的文档用行主键当 source_id
        assert len(records[0].source_id) == 36
        assert records[1].source_id == 'INV-1'

    def test_embedded_costs_read_from_rows(self):
        PatientModelFactory(
            id='P1',
            medications=[{'name': 'Paracetamol', 'cost': 120}],
            tests=[{'testType': 'CBC', 'fee': 300}],
            consultations=[{'doctor': 'Dr. Rao', 'fee': 500}],
        )

        [patient] = DjangoRecordStore().list_patients()

        assert [charge.category for charge in patient.charges] == ['medication', 'test', 'consultation']

    def test_append_payment(self):
        store = DjangoRecordStore()

        stored = store.append_payment({'patientId': 'P1', 'amount': 300, 'paymentMethod': 'UPI'})

        assert store.list_payments('P1')[0].source_id == stored.source_id


class TestFactory:

    def test_memory_store_is_shared(self, settings, monkeypatch):
        settings.LEDGER_STORE = 'memory'
        monkeypatch.setattr('ledger.store.factory._memory_store', None)

        first = get_record_store()

        assert isinstance(first, InMemoryRecordStore)
        assert get_record_store() is first

    def test_django_store(self, settings):
        settings.LEDGER_STORE = 'django'
        assert isinstance(get_record_store(), DjangoRecordStore)

    def test_unknown_store(self, settings):
        settings.LEDGER_STORE = 'mongo'
        with pytest.raises(ValueError):
            get_record_store()
