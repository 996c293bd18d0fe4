from __future__ import annotations

import logging
from typing import Optional

from .extraction import normalize_schema
from .provider import AnalysisProvider
from .providers.fallback import fallback_schema
from .types import VisualSchema

logger = logging.getLogger(__name__)


class Mapper:
    """Turns an image reference into a normalized VisualSchema.

    Analysis failures never escape: a broken or missing backend degrades to
    the deterministic fallback schema so the rest of the pipeline still runs.
    """

    def __init__(self, provider: Optional[AnalysisProvider] = None):
        self.provider = provider

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id if self.provider is not None else "fallback"

    def map(self, image_ref: str) -> VisualSchema:
        if self.provider is None:
            return normalize_schema(fallback_schema(image_ref))

        try:
            raw = self.provider.analyze(image_ref)
            return normalize_schema(raw)
        except Exception as exc:
            logger.warning(
                "Image analysis via '%s' failed (%s). Using fallback schema.",
                self.provider.provider_id,
                f"{type(exc).__name__}: {exc}",
            )
            return normalize_schema(fallback_schema(image_ref))


def mapper(image_ref: str, provider: Optional[AnalysisProvider] = None) -> VisualSchema:
    return Mapper(provider).map(image_ref)
