"""
工厂函数：根据 settings.LEDGER_STORE 返回对应的 RecordStore 实例。

settings.LEDGER_STORE 由环境变量 LEDGER_STORE 控制（默认 "django"）。
换存储只需改环境变量，代码零改动。
"""

from django.conf import settings

from .base import RecordStore

_memory_store = None


def _build_registry() -> dict[str, type[RecordStore]]:
    # 延迟导入，避免在 Django 启动前触发 models import
    from .memory import InMemoryRecordStore
    from .orm import DjangoRecordStore

    return {
        "django": DjangoRecordStore,
        "memory": InMemoryRecordStore,
    }


def get_record_store() -> RecordStore:
    """
    Raises:
        ValueError: LEDGER_STORE 未知
    """
    global _memory_store

    backend = getattr(settings, "LEDGER_STORE", "django")
    registry = _build_registry()
    store_cls = registry.get(backend)

    if store_cls is None:
        raise ValueError(
            f"Unknown LEDGER_STORE: {backend!r}. "
            f"Known stores: {list(registry.keys())}"
        )

    # 内存存储跨请求共享同一个实例，否则每次请求都是空的
    if backend == "memory":
        if _memory_store is None:
            _memory_store = store_cls()
        return _memory_store

    return store_cls()
