from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class TextGenerator(ABC):
    @abstractmethod
    def generate_text(self, prompt: str, schema: Optional[Dict[str, Any]] = None) -> str:
        """Return generated text; with `schema`, the text must be JSON matching it."""
        raise NotImplementedError
