"""
工厂函数：根据记录来源（kind）返回对应 Adapter 类。

新增来源只需：
  1. 在 adapters.py 新建 Adapter 类
  2. 在此处 _build_registry() 加一行
  不需要修改任何匹配 / 汇总代码。
"""

from typing import Optional

from ..exceptions import ValidationError
from .base import BaseRecordAdapter


# key: kind 字符串（与 store 里的集合一一对应）
# value: Adapter 类（未实例化）
def _build_registry() -> dict[str, type[BaseRecordAdapter]]:
    # 延迟导入，避免循环依赖
    from .adapters import AppointmentAdapter, InvoiceAdapter, PaymentAdapter, RoomChargeAdapter

    return {
        "payment":     PaymentAdapter,
        "appointment": AppointmentAdapter,
        "invoice":     InvoiceAdapter,
        "room_charge": RoomChargeAdapter,
    }


def get_adapter(kind: str, document: dict, source_id: Optional[str] = None) -> BaseRecordAdapter:
    """
    根据 kind 返回已实例化的 Adapter。

    Args:
        kind:      记录来源，例如 "payment"、"room_charge"
        document:  store 里的原始文档（dict）
        source_id: 文档 id；文档本身没有 id 字段时由 store 传入

    Raises:
        ValidationError: 未知的 kind
    """
    registry = _build_registry()
    adapter_cls = registry.get(kind)

    if adapter_cls is None:
        raise ValidationError(
            message=f"Unknown record kind: {kind!r}.",
            code="UNKNOWN_RECORD_KIND",
            detail={"known_kinds": list(registry.keys())},
        )

    return adapter_cls(document=document, source_id=source_id)
