from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, UndefinedError

TEMPLATES_DIR = Path(__file__).parent / "templates"
ANALYSIS_TEMPLATE = "analyze_image.j2"


class PromptResolutionError(Exception):
    """Raised when an instruction template cannot be resolved."""

    pass


class PromptResolver:
    def __init__(self, templates_dir: Optional[Path] = None):
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, params: dict[str, Any]) -> str:
        """Render a template and return the resolved text.

        Raises:
            PromptResolutionError: If template not found or variable undefined.
        """
        try:
            tpl = self.env.get_template(template_name)
            return tpl.render(**params).strip() + "\n"
        except TemplateNotFound as e:
            raise PromptResolutionError(
                f"Template '{template_name}' not found in {self.templates_dir}"
            ) from e
        except UndefinedError as e:
            raise PromptResolutionError(
                f"Undefined variable in template '{template_name}': {e}"
            ) from e


def analysis_instruction(hints: Optional[list[str]] = None) -> str:
    return PromptResolver().render(ANALYSIS_TEMPLATE, {"hints": hints or []})
