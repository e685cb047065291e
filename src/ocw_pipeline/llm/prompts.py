"""Prompt template loading and formatting utilities."""

import re
from pathlib import Path

import yaml
from pydantic import BaseModel

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"


class PromptData(BaseModel):
    """Validated prompt template loaded from YAML.

    Fields:
        version: Prompt version (e.g., "v1").
        system_prompt: Optional system prompt text for the LLM.
        user_prompt_template: User prompt with ``{placeholder}`` slots.
    """

    version: str = "unknown"
    system_prompt: str | None = None
    user_prompt_template: str


def load_prompt(path: str | Path) -> PromptData:
    """Load prompt template from YAML file.

    Relative paths are resolved against the bundled prompts directory.

    Raises:
        FileNotFoundError: If the prompt file does not exist.
        ValidationError: If required keys are missing or invalid.
    """
    prompt_path = Path(path)
    if not prompt_path.is_absolute():
        prompt_path = PROMPTS_DIR / prompt_path
    if not prompt_path.exists():
        raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

    with prompt_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return PromptData.model_validate(data)


_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def format_prompt(template: str, **values: str) -> str:
    """Fill ``{name}`` placeholders in a single pass.

    Values already injected (course page text may contain braces)
    are never re-scanned; unknown placeholders are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        return values.get(key, match.group(0))

    return _PLACEHOLDER_RE.sub(_replace, template)
