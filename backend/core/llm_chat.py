"""
Chat relay to the local LLM (Ollama). The assistant answers produce, nutrition
and food-safety questions; the verdict itself is never decided here.
"""
import logging
from typing import Optional

import requests

from core.config import get_ollama_url, get_ollama_model, LLM_CHAT_TIMEOUT

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are a helpful agricultural assistant providing information about produce, "
    "nutrition, and food safety."
)

FALLBACK_REPLY = "I'm sorry, I couldn't generate a response."


def _system_prompt(context: Optional[str]) -> str:
    if context:
        return f"{_SYSTEM_PROMPT} Context: {context}"
    return _SYSTEM_PROMPT


def _call_ollama(system: str, prompt: str, timeout: int = LLM_CHAT_TIMEOUT) -> Optional[str]:
    """Call Ollama and return the response text, or None on failure."""
    try:
        resp = requests.post(
            get_ollama_url(),
            json={
                "model": get_ollama_model(),
                "prompt": prompt,
                "system": system,
                "stream": False,
                "options": {"temperature": 0.3, "num_predict": 1024},
            },
            timeout=timeout,
        )
        resp.raise_for_status()
        return (resp.json().get("response") or "").strip()
    except requests.RequestException as e:
        logger.warning("LLM_CHAT ollama call failed: %s", e)
        return None
    except ValueError as e:
        logger.warning("LLM_CHAT ollama returned non-JSON: %s", e)
        return None


def get_chat_completion(message: str, context: Optional[str] = None) -> Optional[str]:
    """
    Answer one user message. Returns None when the LLM is unreachable,
    FALLBACK_REPLY when it answers with empty text.
    """
    reply = _call_ollama(_system_prompt(context), message)
    if reply is None:
        return None
    if not reply:
        logger.info("LLM_CHAT empty reply; using fallback")
        return FALLBACK_REPLY
    return reply
