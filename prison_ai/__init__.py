"""
Text-generation helpers: settings, the Ollama client, AI-assisted import,
narrative reports and the chat assistant.
"""

from .config import Settings, load_settings  # noqa: F401
from .generator_base import TextGenerator  # noqa: F401
from .ollama_client import OllamaClient  # noqa: F401

__all__ = ["Settings", "load_settings", "TextGenerator", "OllamaClient"]
