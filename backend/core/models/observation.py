"""
Immutable scan observation produced by the external classifier (or a manual PLU re-check).
Validated on construction: a bad observation never reaches the reconciler.
"""
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from core.errors import ValidationError

_PLU_SHAPE = re.compile(r"[0-9]{4,5}")


class OrganicLabel(str, Enum):
    ORGANIC = "ORGANIC"
    NON_ORGANIC = "NON_ORGANIC"

    @classmethod
    def parse(cls, value: Any) -> "OrganicLabel":
        """Accepts enum members and strings like 'organic', 'Non-Organic', 'non organic'."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("model_organic_prediction is required", field="model_organic_prediction")
        key = re.sub(r"[\s\-]+", "_", value.strip().upper())
        if key in ("NONORGANIC", "NOT_ORGANIC", "CONVENTIONAL"):
            key = "NON_ORGANIC"
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(
                f"model_organic_prediction must be ORGANIC or NON_ORGANIC, got {value!r}",
                field="model_organic_prediction",
            ) from None


def is_valid_plu_shape(code: Any) -> bool:
    """4-5 ASCII digits, nothing else."""
    return isinstance(code, str) and bool(_PLU_SHAPE.fullmatch(code))


def check_confidence(value: Any, field_name: str) -> float:
    """Return value as float if it is a real number in [0, 1]; raise ValidationError otherwise."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number in [0, 1], got {value!r}", field=field_name)
    value = float(value)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"{field_name} must be in [0, 1], got {value!r}", field=field_name)
    return value


@dataclass(frozen=True)
class ProduceObservation:
    produce_label: str
    produce_confidence: float
    model_organic_prediction: OrganicLabel
    model_organic_confidence: float
    detected_plu: Optional[str] = None
    plu_confidence: Optional[float] = None

    def __post_init__(self) -> None:
        if not isinstance(self.produce_label, str) or not self.produce_label.strip():
            raise ValidationError("produce_label is required", field="produce_label")
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "produce_confidence", check_confidence(self.produce_confidence, "produce_confidence"))
        object.__setattr__(self, "model_organic_prediction", OrganicLabel.parse(self.model_organic_prediction))
        object.__setattr__(
            self, "model_organic_confidence",
            check_confidence(self.model_organic_confidence, "model_organic_confidence"),
        )
        if self.detected_plu is not None and not is_valid_plu_shape(self.detected_plu):
            raise ValidationError(
                f"detected_plu must be 4-5 digits, got {self.detected_plu!r}", field="detected_plu",
            )
        if self.plu_confidence is not None:
            object.__setattr__(self, "plu_confidence", check_confidence(self.plu_confidence, "plu_confidence"))

    @property
    def model_says_organic(self) -> bool:
        return self.model_organic_prediction is OrganicLabel.ORGANIC

    def to_dict(self) -> dict[str, Any]:
        return {
            "produce_label": self.produce_label,
            "produce_confidence": self.produce_confidence,
            "model_organic_prediction": self.model_organic_prediction.value,
            "model_organic_confidence": self.model_organic_confidence,
            "detected_plu": self.detected_plu,
            "plu_confidence": self.plu_confidence,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ProduceObservation":
        """Load from the input JSON contract; also accepts legacy organic_label/organic_confidence keys."""
        if not isinstance(d, dict):
            raise ValidationError("observation must be a JSON object")
        prediction = d.get("model_organic_prediction")
        if prediction is None:
            prediction = d.get("organic_label")
        confidence = d.get("model_organic_confidence")
        if confidence is None:
            confidence = d.get("organic_confidence")
        if d.get("produce_confidence") is None:
            raise ValidationError("produce_confidence is required", field="produce_confidence")
        if confidence is None:
            raise ValidationError("model_organic_confidence is required", field="model_organic_confidence")
        return cls(
            produce_label=d.get("produce_label"),
            produce_confidence=d.get("produce_confidence"),
            model_organic_prediction=prediction,
            model_organic_confidence=confidence,
            detected_plu=d.get("detected_plu"),
            plu_confidence=d.get("plu_confidence"),
        )
