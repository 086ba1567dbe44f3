"""Pydantic models for tool-call arguments and their parsing."""

from typing import Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from services.assistant.tool_schema import CAREER_FIELDS
from utils.errors import ToolValidationError

CareerField = Literal[tuple(CAREER_FIELDS)]  # type: ignore[valid-type]

ArgsT = TypeVar("ArgsT", bound=BaseModel)


class GenerateImageArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt: str = Field(min_length=1)


class CareerVisualizationArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    careerField: CareerField
    specificRole: Optional[str] = None
    userMessage: Optional[str] = None

    @property
    def subject(self) -> str:
        """Role if given, else the field, for user-facing text."""
        return (self.specificRole or "").strip() or self.careerField


def parse_arguments(model: Type[ArgsT], raw: Optional[str]) -> ArgsT:
    """Parse a JSON argument string into `model`.

    Raises:
        ToolValidationError: If the text is not JSON or required fields are missing/invalid.
    """
    try:
        return model.model_validate_json(raw or "{}")
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'arguments'}: {err['msg']}" for err in exc.errors()
        )
        raise ToolValidationError(f"Invalid arguments - {problems}") from exc
