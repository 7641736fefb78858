from .kv import KvEntry

__all__ = [
    'KvEntry',
]
