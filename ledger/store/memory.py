"""
InMemoryRecordStore — 所有文档都放在进程内存里。

单元测试和本地调试用；LEDGER_STORE=memory 时也可以直接跑 API。
"""

import uuid
from typing import Iterable, Optional

from .base import RecordStore


class InMemoryRecordStore(RecordStore):

    def __init__(self, patients: Iterable[dict] = (), **collections: Iterable[dict]):
        self._patients = [dict(patient) for patient in patients]
        self._collections: dict[str, list[tuple]] = {}
        for collection, documents in collections.items():
            for document in documents:
                self.insert(collection, document)

    def add_patient(self, document: dict) -> None:
        self._patients.append(dict(document))

    def patient_documents(self) -> list[dict]:
        return list(self._patients)

    def documents(self, collection: str, patient_id: Optional[str] = None) -> list[tuple]:
        documents = self._collections.get(collection, [])
        if patient_id is None:
            return list(documents)
        return [(source_id, doc) for source_id, doc in documents if doc.get("patientId") == patient_id]

    def insert(self, collection: str, document: dict) -> str:
        source_id = str(document.get("id") or uuid.uuid4())
        self._collections.setdefault(collection, []).append((source_id, dict(document)))
        return source_id
