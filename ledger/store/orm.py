"""
DjangoRecordStore — 文档存在数据库里（ledger.models.Document，一行一条文档）。

数据库异常统一转成 CollaboratorUnavailable，由 service 层决定怎么降级。
"""

import logging
from contextlib import contextmanager
from typing import Optional

from django.db import DatabaseError

from .. import models
from ..exceptions import CollaboratorUnavailable
from .base import RecordStore

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(operation: str):
    try:
        yield
    except DatabaseError as exc:
        logger.error("Record store failed to %s: %s", operation, exc)
        raise CollaboratorUnavailable(
            message=f"Record store unavailable ({operation})",
            detail={'operation': operation},
        ) from exc


class DjangoRecordStore(RecordStore):

    def patient_documents(self) -> list[dict]:
        with store_errors("list patients"):
            return [patient.to_document() for patient in models.Patient.objects.order_by('created_at', 'id')]

    def documents(self, collection: str, patient_id: Optional[str] = None) -> list[tuple]:
        with store_errors(f"list {collection}"):
            queryset = models.Document.objects.filter(collection=collection)
            if patient_id is not None:
                queryset = queryset.filter(patient_id=patient_id)
            return [
                (str(document.id), document.data)
                for document in queryset.order_by('created_at', 'id')
            ]

    def insert(self, collection: str, document: dict) -> str:
        with store_errors(f"append to {collection}"):
            row = models.Document.objects.create(
                collection=collection,
                patient_id=document.get('patientId') or None,
                data=document,
            )
        return str(row.id)
