"""Tests for prompt loading and formatting utilities."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from ocw_pipeline.llm.prompts import PromptData, format_prompt, load_prompt


@pytest.fixture()
def valid_prompt_file(tmp_path: Path) -> Path:
    data = {
        "version": "v1",
        "system_prompt": "You order course material.",
        "user_prompt_template": "Course: {course_title}\n{lectures}",
    }
    path = tmp_path / "prompt.yaml"
    path.write_text(yaml.dump(data))
    return path


class TestLoadPrompt:
    def test_load_valid_prompt(self, valid_prompt_file: Path) -> None:
        data = load_prompt(valid_prompt_file)
        assert isinstance(data, PromptData)
        assert data.system_prompt == "You order course material."
        assert data.version == "v1"

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_prompt(tmp_path / "nonexistent.yaml")

    def test_load_missing_user_template(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.dump({"system_prompt": "x"}))
        with pytest.raises(ValidationError):
            load_prompt(path)

    @pytest.mark.parametrize("name", ["ordering/v1.yaml", "problems/v1.yaml"])
    def test_bundled_prompts_load(self, name: str) -> None:
        """Relative paths resolve against the packaged prompts directory."""
        data = load_prompt(name)
        assert data.version == "v1"
        assert data.system_prompt


class TestFormatPrompt:
    def test_fills_placeholders(self) -> None:
        assert format_prompt("{a} and {b}", a="x", b="y") == "x and y"

    def test_unknown_placeholders_left_alone(self) -> None:
        assert format_prompt("{a} {missing}", a="x") == "x {missing}"

    def test_json_braces_untouched(self) -> None:
        template = '{"type": "lecture"} for {course_title}'
        assert format_prompt(template, course_title="18.06") == (
            '{"type": "lecture"} for 18.06'
        )

    def test_injected_values_not_rescanned(self) -> None:
        """Page text containing {placeholders} is inserted verbatim."""
        result = format_prompt(
            "{context_block}|{lectures}", context_block="{lectures}", lectures="L0"
        )
        assert result == "{lectures}|L0"
