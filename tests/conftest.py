"""
Pytest configuration and shared fixtures for cellwire tests.

Provides:
- ``source``: builds ESTree-shaped parser output with real offsets for a cell text;
- ``runtime``: an in-memory stand-in for the reactive runtime;
- ``engine``: a script engine double mapping generated function names to Python callables.
"""
import re

import pytest


class CellSource:
    """Builds parser output nodes whose offsets point into ``text``."""

    def __init__(self, text: str):
        self.text = text

    def find(self, fragment: str, nth: int = 0) -> int:
        start = -1
        for _ in range(nth + 1):
            start = self.text.index(fragment, start + 1)
        return start

    def node(self, type_: str, fragment: str, nth: int = 0, **fields):
        start = self.find(fragment, nth)
        return {'type': type_, 'start': start, 'end': start + len(fragment), **fields}

    def ident(self, name: str, nth: int = 0):
        return self.node('Identifier', name, nth, name=name)

    def literal(self, fragment: str, value, nth: int = 0, **fields):
        return self.node('Literal', fragment, nth, value=value, **fields)

    def _decorated(self, type_: str, prefix: str, name: str, nth: int):
        start = self.find(prefix + name, nth)
        ident = {
            'type': 'Identifier',
            'start': start + len(prefix),
            'end': start + len(prefix) + len(name),
            'name': name,
        }
        return {'type': type_, 'start': start, 'end': ident['end'], 'id': ident}

    def view(self, name: str, nth: int = 0):
        return self._decorated('ViewExpression', 'viewof ', name, nth)

    def mutable(self, name: str, nth: int = 0):
        return self._decorated('MutableExpression', 'mutable ', name, nth)

    def whole(self, type_: str, **fields):
        """Node spanning the text without its surrounding whitespace."""
        stripped = self.text.strip()
        return self.node(type_, stripped, **fields)

    def cell(self, body, id=None, references=(), is_async=False, generator=False):
        return {
            'type': 'Cell',
            'id': id,
            'body': body,
            'async': is_async,
            'generator': generator,
            'references': list(references),
            'input': self.text,
        }

    def specifier(self, imported: str, local: str = None, view=False, mutable=False):
        local = local or imported
        return {
            'type': 'ImportSpecifier',
            'view': view,
            'mutable': mutable,
            'imported': {'type': 'Identifier', 'name': imported},
            'local': {'type': 'Identifier', 'name': local},
        }

    def import_cell(self, source: str, specifiers=(), injections=()):
        body = self.whole(
            'ImportDeclaration',
            specifiers=list(specifiers),
            injections=list(injections),
            source={'type': 'Literal', 'value': source},
        )
        return self.cell(body)


class FakeMutable:
    def __init__(self, value):
        self.value = value

    @property
    def generator(self):
        return self.value


class FakeGenerators:
    @staticmethod
    def input(view):
        return view.value


class FakeVariable:
    def __init__(self, module, observer=None):
        self.module = module
        self.observer = observer
        self.name = None
        self.inputs = []
        self.fn = None
        self.imported = None
        self.deleted = False

    def define(self, name, inputs, fn):
        self.name, self.inputs, self.fn = name, list(inputs), fn
        self.module._bind(self)
        return self

    def import_(self, name, alias, module):
        self.name = alias
        self.imported = (name, module)
        self.module._bind(self)
        return self

    def delete(self):
        self.deleted = True
        self.module._unbind(self)


class FakeModule:
    """
    Lazily evaluating module.

    Names resolve to the last variable registered under them. ``value``
    first runs every observed variable once, then evaluates the requested
    name afresh against the cached values of its inputs.
    """

    def __init__(self, runtime, parent=None, overrides=None):
        self.runtime = runtime
        self.parent = parent
        self.overrides = overrides or {}
        self.variables = []
        self.scope = {}
        self.cache = {}

    def variable(self, observer=None):
        var = FakeVariable(self, observer)
        self.variables.append(var)
        return var

    def derive(self, injections, module):
        overrides = {i['alias']: (module, i['name']) for i in injections}
        return FakeModule(self.runtime, parent=self, overrides=overrides)

    def _bind(self, var):
        if var.name is not None:
            self.scope[var.name] = var

    def _unbind(self, var):
        self.variables.remove(var)
        if self.scope.get(var.name) is var:
            del self.scope[var.name]

    def _find(self, name):
        if name in self.scope:
            return self.scope[name]
        return self.parent._find(name) if self.parent else None

    def _get(self, name, fresh=False):
        if name in self.overrides:
            module, target = self.overrides[name]
            return module._get(target)
        var = self._find(name)
        if var is None:
            if name in self.runtime.builtins:
                return self.runtime.builtins[name]
            raise KeyError(f"{name} is not defined")
        return self._evaluate(var, fresh)

    def _evaluate(self, var, fresh=False):
        if not fresh and id(var) in self.cache:
            return self.cache[id(var)]
        if var.imported:
            name, module = var.imported
            result = module._get(name)
        else:
            result = var.fn(*[self._get(i) for i in var.inputs])
        self.cache[id(var)] = result
        return result

    def value(self, name):
        for var in list(self.variables):
            if var.observer and (var.fn or var.imported) and id(var) not in self.cache:
                self._evaluate(var)
        return self._get(name, fresh=True)


class FakeRuntime:
    def __init__(self, builtins=None):
        self.builtins = {'Mutable': FakeMutable, 'Generators': FakeGenerators}
        self.builtins.update(builtins or {})
        self.modules = []

    def module(self):
        module = FakeModule(self)
        self.modules.append(module)
        return module


class FakeEngine:
    """Maps the function name in generated code to a Python implementation."""

    _NAME = re.compile(r"^\s*(?:async\s+)?function\s*\*?\s*([\w$]*)")

    def __init__(self, functions):
        self.functions = functions
        self.compiled = []

    def function(self, code):
        name = self._NAME.match(code).group(1)
        self.compiled.append(code)
        return self.functions[name]


def observe_all(name=None):
    return True


@pytest.fixture
def source():
    """Factory fixture for parser output of one cell text."""
    return CellSource


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def engine_factory():
    def _create(functions):
        return FakeEngine(functions)

    return _create


@pytest.fixture
def observer():
    return observe_all
