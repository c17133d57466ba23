"""
Instruction Files
=================

Loads a YAML instruction file describing one test run.

Format:
    name: Slot machine
    description: Spin the slot machine three times
    startUrl: https://example.com/slots
    instructions:
      - Click the spin button
      - Wait for the reels to stop

Optional keys ``headless``, ``displayWidth`` and ``displayHeight`` override
the corresponding settings for this run.
"""

from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from browser_agent.exceptions import InstructionFileError
from browser_agent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_INSTRUCTIONS_FILE = "./instructions/slotmachine.yaml"


class InstructionSet(BaseModel):
    """Contents of an instruction file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    start_url: Optional[str] = Field(default=None, alias="startUrl")
    instructions: list[str]
    headless: Optional[bool] = None
    display_width: Optional[int] = Field(default=None, alias="displayWidth", gt=0)
    display_height: Optional[int] = Field(default=None, alias="displayHeight", gt=0)

    @field_validator("instructions", mode="before")
    @classmethod
    def clean_instructions(cls, v: Any) -> list[str]:
        """Trim every line and drop the empty ones."""
        if not isinstance(v, list):
            raise ValueError("'instructions' must be a list")
        cleaned = []
        for line in v:
            if line is None:
                continue
            text = str(line).strip()
            if text:
                cleaned.append(text)
        return cleaned


def parse_instructions(text: str) -> InstructionSet:
    """
    Parse instruction file contents.

    Args:
        text: YAML document.

    Returns:
        The parsed instruction set.

    Raises:
        InstructionFileError: If the document is not valid YAML or lacks an
            ``instructions`` list.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InstructionFileError(
            f"Instructions file must be valid YAML with 'startUrl' and 'instructions' fields: {e}"
        ) from e

    if not isinstance(data, dict) or "instructions" not in data:
        raise InstructionFileError("Instructions file must contain an 'instructions' array")

    try:
        return InstructionSet.model_validate(data)
    except ValidationError as e:
        raise InstructionFileError(f"Invalid instructions file: {e}") from e


def load_instructions(path: Union[str, Path]) -> InstructionSet:
    """
    Load and parse an instruction file.

    Args:
        path: Path of the YAML file.

    Returns:
        The parsed instruction set.

    Raises:
        InstructionFileError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise InstructionFileError(f"Cannot read instructions file {path}: {e}") from e

    instruction_set = parse_instructions(text)
    logger.info(
        "Loaded instructions",
        path=str(path),
        name=instruction_set.name,
        count=len(instruction_set.instructions),
        start_url=instruction_set.start_url,
    )
    return instruction_set
