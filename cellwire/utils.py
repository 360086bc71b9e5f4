import json
from typing import Any, Dict, List, Optional

import yaml


def load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def load_parsed_cells(path: str) -> List[Dict[str, Any]]:
    """Read parser output: a JSON list of cells, a ``{"cells": [...]}`` object or a single cell."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        if 'cells' in data:
            return list(data['cells'])
        return [data]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of parsed cells")
    return data
