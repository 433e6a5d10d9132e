"""Element provider, opening catalog and opening store."""

from mep_sleeves.store.interfaces import ElementProvider, OpeningStore, OpeningTypeCatalog
from mep_sleeves.store.memory import DocumentStore

__all__ = [
    "ElementProvider",
    "OpeningStore",
    "OpeningTypeCatalog",
    "DocumentStore",
]
