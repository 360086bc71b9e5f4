import re
from typing import Any, Dict, List, Union

from .tree import read_tree

_HEADER = re.compile(r"^\s*(?:async\s+)?function\s*\*?\s*[\w$]*\s*\(([^)]*)\)")


def function_params(code: str) -> List[str]:
    """Parameter names of the generated function header in ``code``."""
    m = _HEADER.match(code or "")
    if not m:
        raise ValueError("code does not start with a function declaration")
    return [p.strip() for p in m.group(1).split(',') if p.strip()]


def _is_binding(value: Any) -> bool:
    return (isinstance(value, dict)
            and isinstance(value.get('name'), str)
            and isinstance(value.get('alias'), str))


def _check_value_cell(cell: Dict[str, Any], where: str) -> List[str]:
    errors = []
    name = cell.get('name')
    if name is not None and not isinstance(name, str):
        errors.append(f"{where} has a non-string name {name!r}")
    refs = cell.get('references')
    if not isinstance(refs, list) or not all(isinstance(r, str) for r in refs):
        errors.append(f"{where} references must be a list of strings")
        refs = []
    elif len(set(refs)) != len(refs):
        errors.append(f"{where} has duplicate references")
    code = cell.get('code')
    if not isinstance(code, str):
        errors.append(f"{where} is missing its code")
        return errors
    try:
        params = function_params(code)
    except ValueError as exc:
        errors.append(f"{where} {exc}")
        return errors
    if len(params) != len(refs):
        errors.append(f"{where} declares {len(params)} parameter(s) for {len(refs)} reference(s)")
    return errors


def _check_import_cell(cell: Dict[str, Any], where: str) -> List[str]:
    errors = []
    if not isinstance(cell.get('source'), str):
        errors.append(f"{where} is missing its source")
    for key in ('specifiers', 'injections'):
        entries = cell.get(key)
        if not isinstance(entries, list) or not all(_is_binding(e) for e in entries):
            errors.append(f"{where} {key} must be a list of {{name, alias}} pairs")
    return errors


def validate_tree(tree: Union[str, Dict[str, Any]], verbose: bool = False) -> bool:
    """
    Structural validation of a module tree:
      - every entry is a "cell" or an "import"
      - value cells: unique string references, one function parameter per reference
      - imports: string source, {name, alias} specifiers and injections
    """
    if isinstance(tree, str):
        tree = read_tree(tree)
    cells = tree.get('cells')
    errors: List[str] = []
    if not isinstance(cells, list):
        errors.append("tree has no cell list")
        cells = []
    if verbose:
        print(f"Found {len(cells)} cells")

    for i, cell in enumerate(cells):
        kind = cell.get('type') if isinstance(cell, dict) else None
        where = f"cell {i} ({cell.get('name') or cell.get('source') or 'anonymous'})" if kind else f"cell {i}"
        if kind == 'cell':
            errors.extend(_check_value_cell(cell, where))
        elif kind == 'import':
            errors.extend(_check_import_cell(cell, where))
        else:
            errors.append(f"{where} has unknown type {kind!r}")

    if verbose:
        for err in errors:
            print(f"[ERR] {err}")
        print("Validation:", "OK" if not errors else "FAILED")
    return not errors
