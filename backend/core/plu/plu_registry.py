"""
Static PLU registry. Loads data/plu_codes.json once; read-only afterwards.
Lookup by exact code only; callers strip non-digits before calling.
"""
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional
import json
import logging

from .plu_schema import PLULookupResult, is_organic_code
from core.config import get_plu_table_path
from core.errors import PLUNotFoundError, ValidationError
from core.models.observation import is_valid_plu_shape

logger = logging.getLogger(__name__)


class PLURegistry:
    """
    O(1) lookup by code. Every entry's stored is_organic must agree with the
    code shape (5 digits, leading 9); a table that disagrees is refused at load.
    """

    def __init__(self, table_path: Optional[Path] = None):
        self._path = table_path or get_plu_table_path()
        self._by_code: dict[str, PLULookupResult] = {}
        self._version: str = "0"
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            # An empty table would turn every sticker read into NO_PLU_CODE.
            logger.error("PLU table not found at %s", self._path)
            raise FileNotFoundError(f"PLU table not found: {self._path}")
        with open(self._path, encoding="utf-8") as f:
            data = json.load(f)
        self._version = str(data.get("table_version", "0"))
        for code, item in (data.get("codes") or {}).items():
            if not is_valid_plu_shape(code):
                raise ValueError(f"PLU table {self._path}: invalid code shape {code!r}")
            entry = PLULookupResult.from_dict(code, item)
            if entry.is_organic != is_organic_code(code):
                raise ValueError(
                    f"PLU table {self._path}: code {code} stored is_organic={entry.is_organic} "
                    f"but shape says {is_organic_code(code)}"
                )
            self._by_code[code] = entry
        logger.info("Loaded %d PLU codes (version %s) from %s", len(self._by_code), self._version, self._path)

    def lookup(self, code: str) -> PLULookupResult:
        """Resolve a 4-5 digit code. Raises ValidationError on bad shape, PLUNotFoundError when absent."""
        if not is_valid_plu_shape(code):
            raise ValidationError(f"PLU code must be 4-5 digits, got {code!r}", field="plu_code")
        entry = self._by_code.get(code)
        if entry is None:
            logger.info("PLU_LOOKUP unknown code=%s", code)
            raise PLUNotFoundError(code)
        return entry

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __iter__(self) -> Iterator[PLULookupResult]:
        return iter(self._by_code.values())

    def get_version(self) -> str:
        return self._version

    def __len__(self) -> int:
        return len(self._by_code)


@lru_cache(maxsize=1)
def get_default_registry() -> PLURegistry:
    return PLURegistry()


def lookup_plu(code: str) -> PLULookupResult:
    """Process-wide lookup against the default table."""
    return get_default_registry().lookup(code)
