"""
Paths, service endpoints, and centralized configuration.
All resolution relative to the backend directory.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Repo root: backend/core/config.py -> parent=core, parent.parent=backend, parent.parent.parent=repo
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_REPO_ROOT = _BACKEND_DIR.parent

# --- Data paths ---
def get_data_dir() -> Path:
    return _REPO_ROOT / "data"

def get_plu_table_path() -> Path:
    override = os.environ.get("PLU_TABLE_PATH", "").strip()
    if override:
        return Path(override)
    return get_data_dir() / "plu_codes.json"

def get_records_path() -> Path:
    override = os.environ.get("RECORDS_PATH", "").strip()
    if override:
        return Path(override)
    return get_data_dir() / "records.json"

def get_record_store_backend() -> str:
    """'json' (default) or 'memory'."""
    return os.environ.get("RECORD_STORE", "json").strip().lower() or "json"

# --- External classifier service ---
def get_classifier_url() -> str:
    return os.environ.get("CLASSIFIER_API_URL", "http://localhost:8001/predict")

CLASSIFIER_TIMEOUT = int(os.environ.get("CLASSIFIER_TIMEOUT", "30"))
CLASSIFIER_MAX_RETRIES = int(os.environ.get("CLASSIFIER_MAX_RETRIES", "3"))
CLASSIFIER_MAX_IMAGE_SIDE = int(os.environ.get("CLASSIFIER_MAX_IMAGE_SIDE", "1024"))

# --- LLM / Ollama ---
def get_ollama_url() -> str:
    return os.environ.get("OLLAMA_API_URL", "http://localhost:11434/api/generate")

def get_ollama_model() -> str:
    return os.environ.get("OLLAMA_MODEL", "llama3.2:3b")

LLM_CHAT_TIMEOUT = int(os.environ.get("LLM_CHAT_TIMEOUT", "30"))

# --- Startup logging ---
def log_config() -> None:
    logger.info(
        "CONFIG: plu_table=%s records=%s record_store=%s classifier_url=%s "
        "classifier_timeout=%ds classifier_retries=%d max_image_side=%d "
        "ollama_model=%s llm_chat_timeout=%ds",
        get_plu_table_path().exists(), get_records_path(), get_record_store_backend(),
        get_classifier_url(), CLASSIFIER_TIMEOUT, CLASSIFIER_MAX_RETRIES,
        CLASSIFIER_MAX_IMAGE_SIDE, get_ollama_model(), LLM_CHAT_TIMEOUT,
    )
