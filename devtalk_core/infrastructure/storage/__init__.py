"""SessionStore 实现：内存与 JSON 文件。"""

from pathlib import Path
from typing import Optional

from devtalk_core.config.settings import settings
from devtalk_core.domain.session import SessionStore
from devtalk_core.infrastructure.storage.json_store import JsonSessionStore
from devtalk_core.infrastructure.storage.memory_store import InMemorySessionStore


def create_store(backend: Optional[str] = None, root: str | Path | None = None) -> SessionStore:
    """根据配置创建存储实例，默认取 settings.storage_backend。"""

    name = (backend or settings.storage_backend).lower()
    if name == "json":
        return JsonSessionStore(root=root or settings.storage_root)
    return InMemorySessionStore()


__all__ = ["InMemorySessionStore", "JsonSessionStore", "create_store"]
