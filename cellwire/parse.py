from typing import Any, Dict, Iterable, List, Union

from .definitions import visit_cell_definitions
from .descriptors import Descriptor, cell_from_dict
from .imports import visit_cell_imports
from .tree import CodeTreeBuilder

ParsedCell = Dict[str, Any]


def parse_observable_cell(cell: ParsedCell, listener) -> None:
    """
    Feed one parsed cell to ``listener``.

    Import declarations reach ``listener.on_import`` once; value cells reach
    ``listener.on_cell`` one to three times depending on their declared name.
    """
    if cell['body']['type'] == 'ImportDeclaration':
        visit_cell_imports(cell, listener)
    else:
        visit_cell_definitions(cell, listener)


def parse(cells: Union[ParsedCell, Iterable[ParsedCell]]) -> List[Descriptor]:
    """Return the descriptors of one or several parsed cells, in order."""
    if isinstance(cells, dict):
        cells = [cells]
    builder = CodeTreeBuilder()
    for cell in cells:
        parse_observable_cell(cell, builder)
    return [cell_from_dict(entry) for entry in builder.result['cells']]
