"""
PLU table entry. Organic iff the code has five digits and starts with 9.
"""
from dataclasses import dataclass

from core.models.observation import OrganicLabel


def is_organic_code(code: str) -> bool:
    return len(code) == 5 and code[0] == "9"


@dataclass(frozen=True)
class PLULookupResult:
    code: str
    is_organic: bool
    meaning: str

    @property
    def label(self) -> OrganicLabel:
        return OrganicLabel.ORGANIC if self.is_organic else OrganicLabel.NON_ORGANIC

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "is_organic": self.is_organic,
            "meaning": self.meaning,
        }

    @classmethod
    def from_dict(cls, code: str, d: dict) -> "PLULookupResult":
        return cls(
            code=code,
            is_organic=bool(d.get("is_organic", False)),
            meaning=str(d.get("meaning", "")),
        )
