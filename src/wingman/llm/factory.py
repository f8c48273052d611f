"""Build the completion/embedding service selected by configuration."""

import logging
import os

from dotenv import load_dotenv

from wingman.constants import DEFAULT_LLM_MODELS, DEFAULT_OLLAMA_HOST
from wingman.llm.base import LLMService
from wingman.llm.gemini import GeminiService
from wingman.llm.ollama import OllamaService

load_dotenv()

logger = logging.getLogger(__name__)

SUPPORTED_SERVICES = tuple(DEFAULT_LLM_MODELS)


def resolve_llm_config(config: dict | None = None) -> dict[str, str]:
    """Fill an LLM config from the environment and provider defaults.

    Explicit keys win over LLM_SERVICE, OLLAMA_HOST and LLM_MODEL. The
    resolved dict is what the Flask app hands to `get_llm_service` on every
    request, so the model id reported to chats matches the one used.

    Raises:
        ValueError: If the service type is not supported
    """
    config = dict(config or {})
    service = str(config.get("service") or os.getenv("LLM_SERVICE", "ollama")).strip().lower()
    if service not in SUPPORTED_SERVICES:
        raise ValueError(f"Unsupported service type: {service}")

    resolved = {
        "service": service,
        "model": config.get("model") or os.getenv("LLM_MODEL", DEFAULT_LLM_MODELS[service]),
    }
    if service == "ollama":
        resolved["host"] = config.get("host") or os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST)
    return resolved


def get_llm_service(config: dict | None = None) -> LLMService:
    """Create the LLM service for a config dict.

    Args:
        config: Optional keys 'service' ("ollama" or "gemini"), 'host' (Ollama
                only) and 'model'. Missing keys come from the environment.

    Returns:
        LLMService: Completion, summarization and embedding in one object.
    """
    resolved = resolve_llm_config(config)
    logger.debug(f"Creating LLM service: {resolved}")

    if resolved["service"] == "gemini":
        return GeminiService(model=resolved["model"])
    return OllamaService(host=resolved["host"], model=resolved["model"])
