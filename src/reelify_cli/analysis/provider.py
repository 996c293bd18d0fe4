from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class AnalysisError(RuntimeError):
    """Raised when an analysis backend returns nothing usable."""


class AnalysisProvider(ABC):
    @property
    @abstractmethod
    def provider_id(self) -> str: ...

    @abstractmethod
    def analyze(self, image_ref: str) -> dict[str, Any]:
        """Analyze an image and return its raw, un-normalized description."""
        raise NotImplementedError
