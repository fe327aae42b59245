from .plu_schema import PLULookupResult, is_organic_code
from .plu_registry import PLURegistry, get_default_registry, lookup_plu

__all__ = [
    "PLULookupResult",
    "is_organic_code",
    "PLURegistry",
    "get_default_registry",
    "lookup_plu",
]
