"""
Identity matching：决定一条 raw record 属于哪个患者。

三级匹配，严格按优先级短路：
  tier 1  patient_id 精确匹配 → 直接认定，不再看姓名 / 电话
  tier 2  patient_id 缺失或不属于任何已知患者时，姓名精确匹配（区分大小写）
  tier 3  前两级都没命中时，电话号码匹配（去掉非数字字符后比较）

IdentityMatcher 必须用全体患者构建：一条 tier 1 命中患者 A 的记录，
对其他所有患者都不可见，哪怕姓名或电话完全相同。
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from .exceptions import AmbiguousMatchError
from .intake.base import digits_only
from .records import Patient, RawRecord

logger = logging.getLogger(__name__)

TIER_ID = "id"
TIER_NAME = "name"
TIER_PHONE = "phone"


@dataclass(frozen=True)
class MatchResult:
    patient_id: Optional[str]
    tier: Optional[str]


class IdentityMatcher:

    def __init__(self, patients: Iterable[Patient]):
        self._patients: dict[str, Patient] = {}
        self._by_name: dict[str, list[str]] = defaultdict(list)
        self._by_phone: dict[str, list[str]] = defaultdict(list)
        self._reported: set[tuple[str, str]] = set()
        self.diagnostics: list[AmbiguousMatchError] = []
        for patient in patients:
            self.add(patient)

    def add(self, patient: Patient) -> None:
        if patient.id in self._patients:
            return
        self._patients[patient.id] = patient
        if patient.name:
            self._by_name[patient.name].append(patient.id)
        phone = digits_only(patient.phone)
        if phone:
            self._by_phone[phone].append(patient.id)

    # ── tiers ─────────────────────────────────────────────────────────────

    def resolve(self, record: RawRecord) -> MatchResult:
        if record.patient_id and record.patient_id in self._patients:
            return MatchResult(record.patient_id, TIER_ID)

        weaker_tiers = (
            (TIER_NAME, self._by_name.get(record.patient_name or "")),
            (TIER_PHONE, self._by_phone.get(digits_only(record.patient_phone))),
        )
        for tier, candidates in weaker_tiers:
            if not candidates:
                continue
            if len(candidates) > 1:
                self._report_ambiguous(record, tier, candidates)
                return MatchResult(None, tier)
            return MatchResult(candidates[0], tier)

        logger.debug(
            "No patient matches %s record %s (id=%r, name=%r, phone=%r)",
            record.kind, record.source_id, record.patient_id,
            record.patient_name, record.patient_phone,
        )
        return MatchResult(None, None)

    def assign(self, record: RawRecord) -> Optional[str]:
        return self.resolve(record).patient_id

    # ── public API ────────────────────────────────────────────────────────

    def match(self, patient: Patient, records: Iterable[RawRecord]) -> list[RawRecord]:
        """Return the records that belong to `patient`, input order preserved."""
        self.add(patient)
        return [record for record in records if self.assign(record) == patient.id]

    def partition(self, records: Iterable[RawRecord]) -> dict[str, list[RawRecord]]:
        """Group records by owning patient id; unmatched and ambiguous records are dropped."""
        grouped: dict[str, list[RawRecord]] = defaultdict(list)
        for record in records:
            patient_id = self.assign(record)
            if patient_id is not None:
                grouped[patient_id].append(record)
        return grouped

    def _report_ambiguous(self, record: RawRecord, tier: str, candidates: list[str]) -> None:
        key = (record.source_id, tier)
        if key in self._reported:
            return
        self._reported.add(key)
        diagnostic = AmbiguousMatchError(record.source_id, tier, candidates)
        self.diagnostics.append(diagnostic)
        logger.warning("%s", diagnostic.message)


def match(patient: Patient, records: Iterable[RawRecord], patients: Iterable[Patient]) -> list[RawRecord]:
    """
    Convenience wrapper over IdentityMatcher.

    `patients` must be every known patient: matching against `patient` alone
    would let a record that belongs to a namesake through the name tier.
    """
    return IdentityMatcher(patients).match(patient, records)
