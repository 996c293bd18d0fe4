from __future__ import annotations

import base64
import logging
import mimetypes
import os
from pathlib import Path
from typing import Any, Optional

from openai import OpenAI

from ...config import ConfigError, OpenAIProviderConfig
from ..extraction import extract_json_block
from ..prompting import analysis_instruction
from ..provider import AnalysisError, AnalysisProvider

logger = logging.getLogger(__name__)

MAX_INLINE_IMAGE_BYTES = 8_000_000


def build_client(config: OpenAIProviderConfig) -> OpenAI:
    """Construct an OpenAI-compatible client, failing fast on missing credentials."""
    api_key = os.environ.get(config.api_key_env, "")
    if not api_key:
        raise ConfigError(
            f"Environment variable {config.api_key_env} is not set; "
            "it is required by the 'openai' analysis provider."
        )
    return OpenAI(api_key=api_key, base_url=config.base_url)


def _image_part(image_ref: str) -> dict[str, Any]:
    if image_ref.startswith(("http://", "https://", "data:")):
        return {"type": "image_url", "image_url": {"url": image_ref}}

    path = Path(image_ref)
    content = path.read_bytes()
    if len(content) > MAX_INLINE_IMAGE_BYTES:
        raise AnalysisError(
            f"Image {path} is {len(content)} bytes; inline limit is {MAX_INLINE_IMAGE_BYTES}"
        )
    content_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    b64 = base64.b64encode(content).decode("utf-8")
    return {"type": "image_url", "image_url": {"url": f"data:{content_type};base64,{b64}"}}


def _response_text(response: Any) -> Optional[str]:
    choices = getattr(response, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            text = item.get("text") if isinstance(item, dict) else getattr(item, "text", None)
            if isinstance(text, str):
                parts.append(text)
        return "\n".join(parts) or None
    return None


class OpenAIVisionProvider(AnalysisProvider):
    """Image analysis through any OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: Optional[OpenAIProviderConfig] = None, client: Any = None):
        self._config = config or OpenAIProviderConfig()
        self._client = client if client is not None else build_client(self._config)

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def model_id(self) -> str:
        return self._config.model

    def analyze(self, image_ref: str) -> dict[str, Any]:
        response = self._client.chat.completions.create(
            model=self._config.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": analysis_instruction()},
                        _image_part(image_ref),
                    ],
                }
            ],
            max_tokens=self._config.max_tokens,
        )

        text = _response_text(response)
        if not text:
            raise AnalysisError(f"No response content from model {self._config.model}")

        parsed = extract_json_block(text)
        if parsed is None:
            raise AnalysisError("No JSON object found in analysis response")
        logger.debug("Analysis response keys: %s", sorted(parsed))
        return parsed
