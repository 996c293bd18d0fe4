from __future__ import annotations

from pathlib import Path

import pytest

from reelify_cli.analysis.prompting import (
    ANALYSIS_TEMPLATE,
    PromptResolutionError,
    PromptResolver,
    analysis_instruction,
)


@pytest.fixture
def resolver() -> PromptResolver:
    return PromptResolver()


class TestPromptResolver:
    def test_analysis_template_renders(self, resolver: PromptResolver) -> None:
        text = resolver.render(ANALYSIS_TEMPLATE, {"hints": []})
        assert '"visual_analysis"' in text
        assert "return only the JSON object" in text
        assert text.endswith("\n")

    def test_hints_are_included(self) -> None:
        text = analysis_instruction(["two people", "harbor"])
        assert "two people, harbor" in text

    def test_hints_block_omitted_without_hints(self) -> None:
        assert "Consider these hints" not in analysis_instruction()

    def test_missing_variable_raises_clear_error(self, resolver: PromptResolver) -> None:
        with pytest.raises(PromptResolutionError) as exc_info:
            resolver.render(ANALYSIS_TEMPLATE, {})

        error_msg = str(exc_info.value)
        assert "Undefined variable" in error_msg
        assert ANALYSIS_TEMPLATE in error_msg

    def test_missing_template_raises_clear_error(self, resolver: PromptResolver) -> None:
        with pytest.raises(PromptResolutionError) as exc_info:
            resolver.render("nonexistent.j2", {})

        error_msg = str(exc_info.value)
        assert "not found" in error_msg
        assert "nonexistent.j2" in error_msg

    def test_custom_templates_dir(self, tmp_path: Path) -> None:
        (tmp_path / "custom.j2").write_text("Describe {{ subject }}.")
        assert PromptResolver(tmp_path).render("custom.j2", {"subject": "the sky"}) == "Describe the sky.\n"
