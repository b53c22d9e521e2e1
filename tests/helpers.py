from typing import Any, Dict, List, Optional

from prison_ai.generator_base import TextGenerator
from prison_common.errors import CapabilityError
from prison_common.schema import PrisonerData


class StubGenerator(TextGenerator):
    """Records prompts and returns a canned reply (or fails)."""

    def __init__(self, reply: str = "", fail: bool = False) -> None:
        self.reply = reply
        self.fail = fail
        self.prompts: List[str] = []
        self.schemas: List[Optional[Dict[str, Any]]] = []

    def generate_text(self, prompt: str, schema: Optional[Dict[str, Any]] = None) -> str:
        self.prompts.append(prompt)
        self.schemas.append(schema)
        if self.fail:
            raise CapabilityError("service unavailable")
        return self.reply


def make_data(**overrides: Any) -> PrisonerData:
    values: Dict[str, Any] = {"convict_no": "C-1", "admission_date": "2023-01-10", "name": "Ali Khan"}
    values.update(overrides)
    return PrisonerData(**values)
