from .servers import InMemoryServerStore, ServerStore, SQLiteServerStore

__all__ = ["ServerStore", "InMemoryServerStore", "SQLiteServerStore"]
