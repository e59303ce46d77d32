"""
BaseRecordAdapter — 所有记录来源 Adapter 的抽象基类。

每个新来源只需：
1. 继承 BaseRecordAdapter
2. 实现 transform()
3. 在 factory.py 的 _build_registry() 注册一行

匹配 / 去重 / 汇总代码无需任何改动。
"""

import re
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone as dt_timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from ..exceptions import ValidationError
from ..records import RawRecord, quantize

# ── 共用工具（Adapter 可直接复用） ─────────────────────────────────────────
NON_DIGIT_RE = re.compile(r"\D")

STATUS_ALIASES = {
    "paid": "paid",
    "completed": "paid",
    "success": "paid",
    "pending": "pending",
    "due": "due",
    "overdue": "due",
    "partial": "partial",
    "partially paid": "partial",
    "failed": "failed",
}

CATEGORY_ALIASES = {
    "room": "room",
    "admission": "room",
    "bed": "room",
    "medication": "medication",
    "medicine": "medication",
    "pharmacy": "medication",
    "test": "test",
    "tests": "test",
    "lab": "test",
    "consultation": "consultation",
    "service": "consultation",
    "appointment": "consultation",
}


def digits_only(value: Optional[str]) -> str:
    return NON_DIGIT_RE.sub("", value or "")


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def first_present(document: dict, *keys: str) -> Any:
    """Return the first value under `keys` that is neither None nor ''."""
    for key in keys:
        value = document.get(key)
        if value is not None and value != "":
            return value
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    把 ISO 字符串 / date / datetime 统一成带时区的 datetime。
    无法解析时返回 None（timeline 会把它排到最后），不抛异常。
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        try:
            parsed = parse_datetime(text)
            if parsed is None:
                day = parse_date(text)
                parsed = datetime.combine(day, time.min) if day else None
        except ValueError:
            return None
    if parsed is None:
        return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def parse_amount(value: Any, field: str) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    text = str(value).replace(",", "").strip().lstrip("₹$")
    try:
        return quantize(Decimal(text))
    except InvalidOperation:
        raise ValidationError(
            message=f"{field} is not a valid amount: {value!r}",
            code="INVALID_AMOUNT",
            detail={"field": field, "value": str(value)},
        )


def normalize_status(value: Any) -> Optional[str]:
    text = clean_text(value)
    if text is None:
        return None
    return STATUS_ALIASES.get(text.lower())


def normalize_category(value: Any) -> Optional[str]:
    text = clean_text(value)
    if text is None:
        return None
    return CATEGORY_ALIASES.get(text.lower())


class BaseRecordAdapter(ABC):
    """
    三步流水线：parse → transform → validate

    子类必须实现 transform()；
    parse() 提供通用字段（身份 / 日期 / 方式 / 状态）提取，
    validate() 提供通用校验，子类可 super() 后追加检查。
    """

    # 子类声明自己对应的 kind（与 factory 注册键一致）
    kind: str = ""

    def __init__(self, document: dict, source_id: Optional[str] = None):
        self._document = document
        self._source_id = source_id
        self._parsed: dict = {}

    # ── 提供默认实现，子类可 override ──────────────────────────────────────

    def parse(self) -> dict:
        """抽取四种来源共有的字段，结果存入 self._parsed。"""
        doc = self._document
        self._parsed = {
            "source_id": clean_text(first_present(doc, "id", "_id") or self._source_id),
            "patient_id": clean_text(doc.get("patientId")),
            "patient_name": clean_text(doc.get("patientName")),
            "patient_phone": clean_text(first_present(doc, "patientPhone", "contactNumber")),
            "created_at": parse_timestamp(doc.get("createdAt")),
            "method": clean_text(first_present(doc, "paymentMethod", "method", "paymentMode")),
            "description": clean_text(doc.get("description")),
        }
        return self._parsed

    # ── 必须实现 ───────────────────────────────────────────────────────────

    @abstractmethod
    def transform(self) -> RawRecord:
        """将 self._parsed 与原始文档转换为对应的 RawRecord 变体。"""

    def validate(self, record: RawRecord) -> None:
        errors = []

        if not record.source_id:
            errors.append({"field": "id", "message": "Record has no source id."})

        if record.amount < 0:
            errors.append({"field": "amount", "message": "Amount must not be negative."})

        if not (record.patient_id or record.patient_name or record.patient_phone):
            errors.append({
                "field": "patient",
                "message": "One of patientId, patientName or patientPhone is required.",
            })

        if errors:
            raise ValidationError(
                message=f"Invalid {self.kind} record.",
                code="INVALID_RECORD",
                detail={"errors": errors, "source_id": record.source_id},
            )

    # ── 对外统一入口 ───────────────────────────────────────────────────────

    def process(self) -> RawRecord:
        """parse → transform → validate，返回校验通过的 RawRecord。"""
        self.parse()
        record = self.transform()
        self.validate(record)
        return record
