"""
Адаптеры окружения.

Модули:
    - base: контракт адаптера (Protocol)
    - host: реализация для локального запуска (httpx + файловая система)
"""

from ocr_dispatch.adapters.base import CapabilityAdapter, ProgressCallback
from ocr_dispatch.adapters.host import HostAdapter

__all__ = [
    "CapabilityAdapter",
    "ProgressCallback",
    "HostAdapter",
]
