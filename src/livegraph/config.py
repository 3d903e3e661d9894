from __future__ import annotations
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_NAME = "livegraph.yaml"


class EngineConfig(BaseModel):
    graph_changed: Literal["diff", "full"] = "diff"
    report_process_errors: bool = True
    max_messages_per_tick: Optional[int] = Field(default=None, ge=1)
    log_level: Literal["debug", "info", "warning", "error"] = "info"


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Read engine settings from ``path``, else ./livegraph.yaml, else defaults."""
    if path is None:
        path = Path(DEFAULT_CONFIG_NAME)
        if not path.exists():
            return EngineConfig()
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Config file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return EngineConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: expected a mapping of settings")
    try:
        return EngineConfig.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e
