"""IndexWatch: indexation drop recovery and WordPress JSON-LD schema management."""

__version__ = "1.0.0"
