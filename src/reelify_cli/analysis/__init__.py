from .mapper import Mapper, mapper
from .provider import AnalysisError, AnalysisProvider
from .types import VisualSchema

__all__ = [
    "AnalysisError",
    "AnalysisProvider",
    "Mapper",
    "VisualSchema",
    "mapper",
]
