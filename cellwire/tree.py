import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .descriptors import ImportCell, ValueCell, cell_from_dict

log = logging.getLogger(__name__)


class CodeTreeBuilder:
    """Listener collecting descriptors into a serializable module tree."""

    def __init__(self, module: Optional[Dict[str, Any]] = None, meta: Optional[Dict[str, Any]] = None):
        self.module = module if module is not None else {'meta': {}, 'cells': []}
        if meta:
            self.module.setdefault('meta', {}).update(meta)

    @property
    def result(self) -> Dict[str, Any]:
        return self.module

    def on_cell(self, cell: ValueCell) -> None:
        self.module['cells'].append(cell.to_dict())

    def on_import(self, cell: ImportCell) -> None:
        self.module['cells'].append(cell.to_dict())

    async def finalize(self, resolve=None) -> Dict[str, Any]:
        return self.module


def visit_module(tree: Dict[str, Any], listener) -> None:
    """Replay the cells of a module tree into ``listener``."""
    for entry in tree.get('cells') or []:
        kind = entry.type if isinstance(entry, (ValueCell, ImportCell)) else entry.get('type')
        if kind == 'cell':
            listener.on_cell(cell_from_dict(entry))
        elif kind == 'import':
            listener.on_import(cell_from_dict(entry))
        else:
            log.debug("skipping tree entry of type %r", kind)


def write_tree(tree: Dict[str, Any], path: str) -> str:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(tree, indent=2), encoding='utf-8')
    return str(out)


def read_tree(path: str) -> Dict[str, Any]:
    return json.loads(Path(path).read_text(encoding='utf-8'))
