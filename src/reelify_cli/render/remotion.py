from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from ..config import RenderSettings
from ..reproducibility import artifact_name
from .process import binary_exists, run_process
from .renderer import Renderer, RenderError, RendererNotFoundError, RenderRequest

logger = logging.getLogger(__name__)


class RemotionRenderer(Renderer):
    """Hands a composition to a Remotion-style CLI as JSON props."""

    def __init__(self, settings: Optional[RenderSettings] = None, temp_dir: Path = Path("temp")):
        self.settings = settings or RenderSettings()
        self.temp_dir = temp_dir

    @property
    def renderer_id(self) -> str:
        return "remotion"

    def check(self) -> bool:
        return binary_exists(self.settings.command[0])

    def build_command(self, composition_id: str, output_path: Path, props_path: Path) -> list[str]:
        s = self.settings
        return [
            *s.command,
            s.entry_point,
            composition_id,
            str(output_path),
            f"--codec={s.codec}",
            f"--crf={s.crf}",
            f"--pixel-format={s.pixel_format}",
            f"--concurrency={s.concurrency}",
            f"--props={props_path}",
        ]

    def write_props(self, request: RenderRequest) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        props_path = self.temp_dir / artifact_name("props", ".json")
        props = request.composition.to_render_props(
            image_src=request.image_src, bake=self.settings.bake_frames
        )
        props_path.write_text(json.dumps(props, indent=2), encoding="utf-8")
        return props_path

    def render(self, request: RenderRequest) -> Path:
        """Render a composition to video.

        Raises:
            RendererNotFoundError: If the launcher binary is not installed
            RenderError: If the process fails, times out or leaves no output
        """
        if not self.check():
            raise RendererNotFoundError(self.settings.command[0])

        request.output_path.parent.mkdir(parents=True, exist_ok=True)
        props_path = self.write_props(request)
        try:
            cmd = self.build_command(
                request.composition.composition_id, request.output_path, props_path
            )
            outcome = run_process(cmd, request.output_path, request.timeout_sec)
        finally:
            props_path.unlink(missing_ok=True)

        if not outcome.ok:
            raise RenderError(outcome)

        logger.info("Rendered %s", request.output_path)
        return request.output_path
