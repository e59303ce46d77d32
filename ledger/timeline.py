"""Treatment / payment timeline for a single patient."""

import math
from datetime import datetime
from typing import Iterable, Optional

from django.utils import timezone

from .intake.base import clean_text, first_present, parse_timestamp
from .records import LedgerEntry, Patient, TimelineEvent


def _admission_event(patient: Patient) -> TimelineEvent:
    return TimelineEvent(
        kind="admission",
        date=patient.admission_date,
        description=f"Patient admitted with {patient.condition or 'medical condition'}",
        doctor=patient.doctor,
    )


def _treatment_event(patient: Patient, record: dict) -> TimelineEvent:
    return TimelineEvent(
        kind="treatment",
        date=parse_timestamp(first_present(record, "date", "createdAt")),
        description=clean_text(first_present(record, "diagnosis", "notes", "description")) or "Treatment",
        doctor=clean_text(record.get("doctor")) or patient.doctor,
    )


def _test_event(patient: Patient, report: dict) -> TimelineEvent:
    test_name = clean_text(first_present(report, "testType", "title")) or "Medical Test"
    result = clean_text(report.get("result")) or "Report generated"
    return TimelineEvent(
        kind="test",
        date=parse_timestamp(first_present(report, "date", "createdAt")),
        description=f"{test_name} - {result}",
        doctor=clean_text(report.get("doctor")) or patient.doctor,
    )


def _medication_events(patient: Patient) -> list[TimelineEvent]:
    events = []
    for medication in patient.medications:
        directions = medication.dosage or medication.instructions
        description = f"Prescribed {medication.name}"
        if directions:
            description += f" - {directions}"
        events.append(TimelineEvent(
            kind="medication",
            date=medication.start_date or patient.admission_date,
            description=description,
            doctor=medication.doctor or patient.doctor,
        ))
    return events


def _payment_event(patient: Patient, entry: LedgerEntry) -> TimelineEvent:
    method = f" via {entry.method}" if entry.method else ""
    return TimelineEvent(
        kind="payment",
        date=entry.date,
        description=f"{entry.description}: {entry.amount}{method}",
        doctor=None,
    )


def build_timeline(
    patient: Patient,
    medical_history: Iterable[dict],
    reports: Iterable[dict],
    payments: Iterable[LedgerEntry] = (),
) -> list[TimelineEvent]:
    """
    Merge every dated event of a patient into one ascending sequence.

    Events are constructed in a fixed order (admission, treatments, tests,
    medications, payments) and then stable-sorted by date, so equal dates keep
    construction order and undated events trail at the end.
    """
    events = [_admission_event(patient)]
    events.extend(_treatment_event(patient, record) for record in medical_history)
    events.extend(_test_event(patient, report) for report in reports)
    events.extend(_medication_events(patient))
    events.extend(_payment_event(patient, entry) for entry in payments)

    dated = [event for event in events if event.date is not None]
    undated = [event for event in events if event.date is None]
    dated.sort(key=lambda event: event.date)
    return dated + undated


def admission_duration(admission_date: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days since admission, rounded up; None when the date is unknown."""
    if admission_date is None:
        return None
    now = now or timezone.now()
    seconds = abs((now - admission_date).total_seconds())
    return math.ceil(seconds / 86400)
