"""
Compilation of cell descriptors into a reactive dataflow module.

The runtime itself is external. It is driven through this surface:

- ``runtime.module()`` creates a module;
- ``module.variable(observer)`` creates a node;
- ``module.derive(injections, module)`` returns a copy of an imported module
  with some names bound to nodes of ``module``;
- ``variable.define(name, inputs, fn)``, ``variable.import_(name, alias, module)``
  and ``variable.delete()`` manage one node.

Value cells are registered as soon as they are seen; imports are queued and
resolved one after the other by ``finalize``, so every value cell of a batch
is already defined when the first import is resolved.
"""
import inspect
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

from .descriptors import Binding, Descriptor, ImportCell, ValueCell
from .tree import visit_module

log = logging.getLogger(__name__)


def _unobserved(name: Optional[str] = None) -> None:
    return None


def format_import_cell(cell: ImportCell) -> str:
    """Render an import statement, e.g. ``import {a, b as c} with {x} from "@o/n"``."""

    def serialize(bindings: Iterable[Binding]) -> str:
        return ", ".join(
            b.name if b.name == b.alias else f"{b.name} as {b.alias}"
            for b in bindings
        )

    chunks = ["import"]
    specifiers = serialize(cell.specifiers)
    if specifiers:
        chunks += ["{", specifiers, "}"]
    injections = serialize(cell.injections)
    if injections:
        chunks += ["with {", injections, "}"]
    chunks += ["from", '"' + quote(cell.source, safe="-_.!~*'()") + '"']
    return " ".join(chunks)


def compile_cell_code(cell: ValueCell, engine: Any = None, **context: Any) -> Callable[..., Any]:
    """
    Turn the generated function source of ``cell`` into a callable.

    Cell code is script source, so a script ``engine`` exposing
    ``engine.function(code) -> callable`` is required. The returned callable
    invokes the function without a receiver.
    """
    if engine is None:
        raise RuntimeError(
            f"a script engine is required to evaluate cell {cell.name!r}; "
            "pass engine= or compile_cell="
        )
    method = engine.function(cell.code)

    def run(*args):
        return method(*args)

    return run


class ImportGroup:
    """The nodes created for one import statement, removable as a unit."""

    def __init__(self, cell: ImportCell, proxy: Any, variables: List[Any]):
        self.cell = cell
        self.proxy = proxy
        self.variables = variables

    def delete(self) -> None:
        log.debug("deleting import of %s (%d node(s))", self.cell.source, len(self.variables) + 1)
        for variable in self.variables:
            variable.delete()
        self.proxy.delete()

    def __repr__(self) -> str:
        return f"ImportGroup(source={self.cell.source!r}, variables={len(self.variables)})"


def remove_import(group: ImportGroup) -> None:
    group.delete()


class CompiledModule:
    def __init__(self, module: Any, variables: List[Any], imports: List[ImportGroup]):
        self.module = module
        self.variables = variables
        self.imports = imports

    def __iter__(self):
        return iter((self.module, self.variables))


class CompilingListener:
    """Listener wiring descriptors into a live module of ``runtime``."""

    def __init__(self,
                 runtime: Any = None,
                 observer: Optional[Callable[[Optional[str]], Any]] = None,
                 module: Any = None,
                 compile_cell: Optional[Callable[..., Callable[..., Any]]] = None,
                 format_import: Optional[Callable[[ImportCell], Any]] = None,
                 engine: Any = None,
                 loader: Any = None):
        self.runtime = runtime
        self.observer = observer or _unobserved
        self.compile_cell = compile_cell or compile_cell_code
        self.format_import = format_import or format_import_cell
        self.engine = engine
        self.loader = loader
        self._module = module
        self.variables: List[Any] = []
        self.imports: List[ImportGroup] = []
        self.pending_imports: List[ImportCell] = []

    @property
    def module(self) -> Any:
        if self._module is None:
            if self.runtime is None:
                raise RuntimeError("either a module or a runtime is required")
            self._module = self.runtime.module()
        return self._module

    def on_cell(self, cell: ValueCell) -> None:
        variable = self.module.variable(self.observer(cell.name))
        try:
            fn = self.compile_cell(
                cell,
                engine=self.engine,
                module=self.module,
                variable=variable,
                runtime=self.runtime,
            )
            variable.define(cell.name, list(cell.references), fn)
        except Exception:
            # a cell is registered whole or not at all
            variable.delete()
            raise
        log.debug("defined %r <- %s", cell.name, cell.references)
        self.variables.append(variable)

    def on_import(self, cell: ImportCell) -> None:
        self.pending_imports.append(cell)

    async def finalize(self, resolve: Optional[Callable[..., Any]] = None) -> Any:
        """Resolve and wire the queued imports in order; return the module."""
        if resolve is None:
            from .resolve import resolve_import_source
            resolve = resolve_import_source
        while self.pending_imports:
            await self._run_import(self.pending_imports[0], resolve)
            self.pending_imports.pop(0)
        return self.module

    async def _run_import(self, cell: ImportCell, resolve: Callable[..., Any]) -> None:
        module = self.module
        log.debug("resolving import %s", cell.source)
        imported = resolve(
            source=cell.source,
            cell=cell,
            module=module,
            runtime=self.runtime,
            observer=self.observer,
            loader=self.loader,
        )
        if inspect.isawaitable(imported):
            imported = await imported
        if cell.injections:
            imported = imported.derive([b.to_dict() for b in cell.injections], module)

        members = []
        for specifier in cell.specifiers:
            variable = module.variable(self.observer(specifier.alias))
            variable.import_(specifier.name, specifier.alias, imported)
            members.append(variable)

        proxy = module.variable(self.observer(None))
        proxy.define(None, [], lambda: self.format_import(cell))
        self.variables.append(proxy)
        self.imports.append(ImportGroup(cell, proxy, members))


async def compile_cells(cells: Union[Dict[str, Any], Iterable[Union[Descriptor, Dict[str, Any]]]],
                        runtime: Any = None,
                        observer: Optional[Callable[[Optional[str]], Any]] = None,
                        module: Any = None,
                        resolve: Optional[Callable[..., Any]] = None,
                        compile_cell: Optional[Callable[..., Callable[..., Any]]] = None,
                        format_import: Optional[Callable[[ImportCell], Any]] = None,
                        engine: Any = None,
                        loader: Any = None) -> CompiledModule:
    """
    Compile descriptors (or a module tree) into ``module``.

    Returns a ``CompiledModule`` holding the module, the created variables
    (value cells first, then one proxy per import) and the import groups.
    """
    listener = CompilingListener(
        runtime=runtime,
        observer=observer,
        module=module,
        compile_cell=compile_cell,
        format_import=format_import,
        engine=engine,
        loader=loader,
    )
    tree = cells if isinstance(cells, dict) else {'cells': list(cells)}
    visit_module(tree, listener)
    await listener.finalize(resolve)
    return CompiledModule(listener.module, listener.variables, listener.imports)
