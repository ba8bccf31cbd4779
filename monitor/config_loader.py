from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

from proctor.config import ProctorSettings

from .schemas import SettingsSchema


def load_settings(path: str) -> ProctorSettings:
    cfg_path = Path(path)
    if not cfg_path.exists():
        return ProctorSettings()
    with cfg_path.open("r") as fh:
        data: Dict[str, Any] = yaml.safe_load(fh) or {}
    validated = SettingsSchema.model_validate(data)
    return ProctorSettings.from_dict(validated.model_dump())
