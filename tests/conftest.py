"""
Shared fixtures for all tests.

factory-boy factories live in tests/factories.py so both unit/ and
integration/ can import them.
"""
import pytest
from django.test import Client

from ledger.store import InMemoryRecordStore


@pytest.fixture
def api_client():
    """Django test client for integration tests."""
    return Client()


@pytest.fixture
def p1_documents():
    """P1 registered with a 5000 total, one 5000 invoice and one 2000 payment."""
    return {
        'patients': [{
            'id': 'P1',
            'name': 'Basha',
            'phone': '+91 98765 43210',
            'admissionDate': '2025-07-01T08:00:00Z',
            'condition': 'Dengue fever',
            'doctor': 'Dr. Rao',
            'paymentDetails': {'totalAmount': 5000},
        }],
        'invoices': [{
            'id': 'INV-1',
            'patientId': 'P1',
            'totalAmount': 5000,
            'issueDate': '2025-07-01',
            'serviceType': 'Service',
            'status': 'pending',
        }],
        'payments': [{
            'id': 'PAY-2000',
            'patientId': 'P1',
            'amount': 2000,
            'paymentMethod': 'Cash',
            'date': '2025-07-02',
            'status': 'paid',
        }],
    }


@pytest.fixture
def memory_store(p1_documents):
    return InMemoryRecordStore(**p1_documents)
