from typing import Any, Dict, Iterable, List

from .descriptors import Binding, ImportCell


def _bindings(entries: Iterable[Dict[str, Any]]) -> List[Binding]:
    """
    Expand specifier/injection entries into (name, alias) bindings.

    A ``viewof`` or ``mutable`` entry yields its decorated pair right before
    the base pair, e.g. ``import {viewof a as b}`` binds both
    ``viewof a -> viewof b`` and ``a -> b``.
    """
    out: List[Binding] = []
    for entry in entries:
        name = entry['imported']['name']
        alias = entry['local']['name']
        if entry.get('view'):
            out.append(Binding("viewof " + name, "viewof " + alias))
        elif entry.get('mutable'):
            out.append(Binding("mutable " + name, "mutable " + alias))
        out.append(Binding(name, alias))
    return out


def cell_imports(cell: Dict[str, Any]) -> ImportCell:
    body = cell['body']
    return ImportCell(
        source=body['source']['value'],
        specifiers=_bindings(body.get('specifiers') or []),
        injections=_bindings(body.get('injections') or []),
    )


def visit_cell_imports(cell: Dict[str, Any], listener) -> None:
    listener.on_import(cell_imports(cell))
