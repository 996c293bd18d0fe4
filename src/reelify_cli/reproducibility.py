from __future__ import annotations

import subprocess
import time
import uuid
from pathlib import Path


def get_pipeline_version() -> str:
    """Get pipeline version from git or pyproject.toml."""
    try:
        result = subprocess.run(
            ["git", "describe", "--tags", "--always", "--dirty"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        pass

    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text(encoding="utf-8")
        for line in content.splitlines():
            if line.strip().startswith("version"):
                parts = line.split("=", 1)
                if len(parts) == 2:
                    return parts[1].strip().strip('"').strip("'")

    return "unknown"


def new_request_id() -> str:
    return uuid.uuid4().hex


def artifact_name(prefix: str, suffix: str) -> str:
    """Collision-resistant file name: millisecond timestamp plus a random tag."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{suffix}"
