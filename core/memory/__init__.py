from .memory_store import MemoryStore, parse_timespan

__all__ = ["MemoryStore", "parse_timespan"]
