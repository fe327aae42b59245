import base64
import binascii
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from core.config import (
    CLASSIFIER_MAX_IMAGE_SIDE,
    CLASSIFIER_MAX_RETRIES,
    CLASSIFIER_TIMEOUT,
    get_classifier_url,
)
from core.errors import ClassifierUnavailableError, ValidationError
from core.external_apis.http_retry import post_with_retries
from core.models.observation import ProduceObservation, is_valid_plu_shape

logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:image/[\w.+-]+;base64,", re.IGNORECASE)
_NO_PLU_TEXT = {"", "none", "null", "n/a", "not detected"}


@dataclass(frozen=True)
class ClassifierResult:
    observation: ProduceObservation
    plu_meaning: Optional[str]
    advice: str


def decode_data_url(text: str) -> bytes:
    """Decode a data:image/...;base64, URL (or bare base64) to raw bytes."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("image is required", field="image")
    payload = _DATA_URL.sub("", text.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("image is not valid base64", field="image") from None


def prepare_image(image_bytes: bytes, max_side: int = CLASSIFIER_MAX_IMAGE_SIDE) -> bytes:
    """
    Re-encode the upload as RGB JPEG with the long side bounded.
    Rejects anything Pillow cannot open.
    """
    try:
        img = Image.open(BytesIO(image_bytes))
        img = img.convert("RGB")
    except (UnidentifiedImageError, OSError):
        raise ValidationError("uploaded file is not a readable image", field="image") from None
    except Image.DecompressionBombError:
        raise ValidationError("uploaded image is too large to process", field="image") from None
    img.thumbnail((max_side, max_side))
    out = BytesIO()
    img.save(out, format="JPEG", quality=90)
    return out.getvalue()


def clean_plu_text(raw: Any) -> Optional[str]:
    """
    OCR text -> 4-5 digit code, or None. Non-digits are stripped; anything that
    is not 4-5 digits afterwards counts as no sticker read.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if text.lower() in _NO_PLU_TEXT:
        return None
    digits = re.sub(r"\D", "", text)
    if not is_valid_plu_shape(digits):
        logger.info("CLASSIFIER dropping unreadable plu raw=%s", text[:20])
        return None
    return digits


def observation_from_payload(payload: dict) -> ClassifierResult:
    """Map the classifier response body to a validated observation."""
    if not isinstance(payload, dict):
        raise ClassifierUnavailableError("classifier returned a non-object body")
    plu = clean_plu_text(payload.get("detected_plu"))
    data = dict(payload)
    data["detected_plu"] = plu
    if plu is None:
        data["plu_confidence"] = None
    observation = ProduceObservation.from_dict(data)
    return ClassifierResult(
        observation=observation,
        plu_meaning=payload.get("plu_meaning") if plu else None,
        advice=str(payload.get("automatic_advice") or ""),
    )


class ClassifierClient:
    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
    ):
        self.url = url or get_classifier_url()
        self.timeout = timeout or CLASSIFIER_TIMEOUT
        self.max_retries = max_retries or CLASSIFIER_MAX_RETRIES

    def classify(self, image_bytes: bytes) -> ClassifierResult:
        """
        Send one image to the classifier and return the validated observation.
        Raises ValidationError for bad images or payloads, ClassifierUnavailableError for transport failures.
        """
        jpeg = prepare_image(image_bytes)
        data_url = "data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii")
        resp, err = post_with_retries(
            self.url, json={"image": data_url}, timeout=self.timeout, max_retries=self.max_retries,
        )
        if resp is None:
            raise ClassifierUnavailableError(f"classifier unreachable: {err}")
        if resp.status_code >= 400:
            logger.warning("CLASSIFIER status=%s url=%s", resp.status_code, self.url[:60])
            raise ClassifierUnavailableError(f"classifier returned HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError:
            raise ClassifierUnavailableError("classifier returned non-JSON body") from None
        result = observation_from_payload(payload)
        logger.info(
            "CLASSIFIER produce=%s conf=%.2f model=%s plu=%s",
            result.observation.produce_label, result.observation.produce_confidence,
            result.observation.model_organic_prediction.value, result.observation.detected_plu,
        )
        return result
