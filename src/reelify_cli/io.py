from __future__ import annotations

import json
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


def read_document(path: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML mapping; YAML's parser accepts both."""
    p = Path(path)
    data = yaml.safe_load(p.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Document root must be a mapping: {p}")
    return data


def load_model(model_cls: type[T], path: str | Path) -> T:
    return model_cls.model_validate(read_document(path))


def write_json(path: str | Path, payload: Any) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return p
