from .creative import CreativeDirection, analyze_prompt, extract_duration
from .synthesizer import DirectorPolicy, MotionIR, director

__all__ = [
    "CreativeDirection",
    "DirectorPolicy",
    "MotionIR",
    "analyze_prompt",
    "director",
    "extract_duration",
]
