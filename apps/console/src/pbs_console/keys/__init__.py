from pbs_console.keys.catalog import CatalogLoadFailed, KeyCatalog, KeyRecord
from pbs_console.keys.selector import KeyOption, KeySelector, SelectionRequired, UnknownKey

__all__ = [
    "CatalogLoadFailed",
    "KeyCatalog",
    "KeyOption",
    "KeyRecord",
    "KeySelector",
    "SelectionRequired",
    "UnknownKey",
]
