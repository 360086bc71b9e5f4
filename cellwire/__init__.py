"""cellwire: compiles notebook cells into reactive dataflow modules.

Key entry points:
- parse / parse_observable_cell (cell desugaring)
- CodeTreeBuilder (serializable module trees)
- compile_cells / CompilingListener (wiring into a runtime module)
- resolve_import_source (import resolution)
- validate_tree / visualize_tree (tooling)
"""
from .compiler import (
    CompiledModule,
    CompilingListener,
    ImportGroup,
    compile_cell_code,
    compile_cells,
    format_import_cell,
    remove_import,
)
from .descriptors import Binding, ImportCell, ValueCell, cell_from_dict
from .parse import parse, parse_observable_cell
from .resolve import (
    FileTreeLoader,
    HttpTreeLoader,
    TreeModuleDefinition,
    expand_observablehq_url,
    resolve_import_source,
)
from .tree import CodeTreeBuilder, read_tree, visit_module, write_tree
from .validate_tree import validate_tree
from .visualize import build_dependency_graph, visualize_tree

__version__ = "0.1.0"
