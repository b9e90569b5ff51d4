"""Safe YAML loader."""
from pathlib import Path

import yaml


def load_yaml(path: str) -> dict:
    """Return the mapping stored in ``path`` or ``{}`` when the file is absent."""
    p = Path(path)
    if not p.exists():
        return {}
    with p.open() as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data
