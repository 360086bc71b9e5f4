"""
Desugaring of value cells.

``viewof x = ...`` and ``mutable x = ...`` declarations are expanded into
plain cells wired through synthetic intermediate names, so that a runtime
with plain dependency wiring only can still serve them:

    viewof x   ->  "viewof x" (original code), x = Generators.input(viewof x)
    mutable x  ->  "mutable initial x" (original code),
                   "mutable x" = new Mutable(mutable initial x),
                   x = (mutable x).generator
"""
import logging
from typing import Any, Dict, List, Optional

from .ast_capture import MUTABLE, VIEW, get_cell_code_and_references
from .descriptors import ValueCell

log = logging.getLogger(__name__)


def declared_name(cell: Dict[str, Any]) -> Optional[str]:
    ident = cell.get('id')
    if not ident:
        return None
    if ident.get('name'):
        return ident['name']
    return (ident.get('id') or {}).get('name')


def cell_definitions(cell: Dict[str, Any]) -> List[ValueCell]:
    """Return the descriptors for one parsed value cell, in registration order."""
    references, code, constants = get_cell_code_and_references(cell)
    name = declared_name(cell)
    kind = (cell.get('id') or {}).get('type')

    if kind == VIEW:
        return [
            ValueCell(f"viewof {name}", references, code, constants),
            ValueCell(
                name,
                ["Generators", f"viewof {name}"],
                f"function value_{name}(Generators, $) {{ return Generators.input($); }}",
            ),
        ]
    if kind == MUTABLE:
        return [
            ValueCell(f"mutable initial {name}", references, code, constants),
            ValueCell(
                f"mutable {name}",
                ["Mutable", f"mutable initial {name}"],
                f"function mutable_{name}(Mutable, $) {{ return new Mutable($); }}",
            ),
            ValueCell(
                name,
                [f"mutable {name}"],
                f"function value_{name}($) {{ return $.generator; }}",
            ),
        ]
    return [ValueCell(name, references, code, constants)]


def visit_cell_definitions(cell: Dict[str, Any], listener) -> None:
    cells = cell_definitions(cell)
    log.debug("cell %r expands to %d definition(s)", cells[-1].name, len(cells))
    for definition in cells:
        listener.on_cell(definition)
