"""
Response serializers — 派生结果 → JSON-able dict。

只负责「输出格式化」，不做任何计算或校验。
金额一律输出字符串（Decimal 原样保留两位小数），时间输出 ISO 8601。
"""


def _iso(value):
    return value.isoformat() if value else None


def serialize_entry(entry):
    return {
        'id': entry.id,
        'amount': str(entry.amount),
        'method': entry.method,
        'date': _iso(entry.date),
        'description': entry.description,
        'origin': entry.origin,
        'source_ids': list(entry.source_ids),
    }


def serialize_ledger(ledger):
    """Serialize a ledger; `stale` only appears when it was served from cache."""
    breakdown = ledger.cost_breakdown
    response = {
        'patient_id': ledger.patient_id,
        'total_amount': str(ledger.total_amount),
        'total_paid': str(ledger.total_paid),
        'due_amount': str(ledger.due_amount),
        'status': ledger.status,
        'payments': [serialize_entry(entry) for entry in ledger.payments],
        'cost_breakdown': {
            'room_charges': str(breakdown.room_charges),
            'medication_charges': str(breakdown.medication_charges),
            'test_charges': str(breakdown.test_charges),
            'consultation_charges': str(breakdown.consultation_charges),
            'miscellaneous': str(breakdown.miscellaneous),
        },
    }
    if ledger.stale:
        response['stale'] = True
        response['message'] = 'Record store unavailable; showing last computed ledger'
    return response


def serialize_timeline(patient_id, events):
    return {
        'patient_id': patient_id,
        'count': len(events),
        'events': [
            {
                'type': event.kind,
                'date': _iso(event.date),
                'description': event.description,
                'doctor': event.doctor,
            }
            for event in events
        ],
    }


def serialize_outstanding(balances):
    results = [
        {
            'patient_id': balance.patient_id,
            'patient_name': balance.patient_name,
            'total_amount': str(balance.total_amount),
            'total_paid': str(balance.total_paid),
            'due_amount': str(balance.due_amount),
            'last_payment_date': _iso(balance.last_payment_date),
        }
        for balance in balances
    ]
    return {
        'count': len(results),
        'patients': results,
    }
