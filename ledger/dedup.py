"""
Deduplication：同一笔交易可能经两条录入路径各存一份，汇总前必须折叠。

任一条件成立即视为重复，保留输入顺序里第一条（直接付款排在挂号费前面）：
  1. source_id 相同
  2. 交叉引用 id 相同（appointment 自己的 id，或 payment / invoice 指向它的 reference_id）
  3. transaction_id 相同
  4. (patient, amount, date, method) 相同，仅限没有 transaction_id 的记录

2、3、4 只在同一 ledger role 内比较：一张已付的挂号账单（charge）和对应的付款（payment）
金额日期都一样，但它们不是同一笔交易。
带 transaction_id 的记录不参与 4：同一天同金额同方式的两笔付款是两笔钱。

必须在 identity matching 之后运行，否则不同患者的交易可能被误判重复。
"""

import logging
from typing import Iterable, Optional

from .records import RawRecord, ledger_role

logger = logging.getLogger(__name__)


def dedup_keys(record: RawRecord, patient_id: Optional[str] = None) -> list[tuple]:
    """
    All keys under which `record` can collide with another record.

    `patient_id` is the owner assigned by identity matching; when given it
    replaces the record's own (possibly missing) patientId in the tuple key.
    """
    role = ledger_role(record)
    keys = [("source", record.source_id)]

    cross_ref = record.source_id if record.kind == "appointment" else record.reference_id
    if cross_ref:
        keys.append(("ref", role, cross_ref))

    transaction_id = getattr(record, "transaction_id", None)
    if transaction_id:
        keys.append(("tid", role, transaction_id))
        return keys

    when = record.effective_date
    if when is not None:
        owner = patient_id or record.patient_id
        keys.append(("txn", role, owner, record.amount, when, record.method))
    return keys


def dedupe(records: Iterable[RawRecord], patient_id: Optional[str] = None) -> list[RawRecord]:
    seen: dict[tuple, str] = {}
    kept = []
    for record in records:
        keys = dedup_keys(record, patient_id)
        duplicate_of = next((seen[key] for key in keys if key in seen), None)
        if duplicate_of is not None:
            logger.debug(
                "Dropping %s record %s as duplicate of %s",
                record.kind, record.source_id, duplicate_of,
            )
            continue
        for key in keys:
            seen.setdefault(key, record.source_id)
        kept.append(record)
    return kept
