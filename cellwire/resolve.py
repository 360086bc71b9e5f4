"""
Resolution of import sources to runtime modules.

``resolve_import_source`` is the default resolver used by
``CompilingListener.finalize``: it expands notebook shorthands to a module
URL, asks a loader for a module definition and instantiates it on the
runtime. Loaders are passed explicitly; there is no process-wide default.

A loader is any callable ``loader(url) -> definition`` where
``definition(runtime, observer)`` returns a module (or an awaitable of one).
The loaders defined here read serialized module trees::

    {"meta": {...}, "cells": [{"type": "cell", ...}, {"type": "import", ...}]}

either over HTTP (``HttpTreeLoader``) or from local files
(``FileTreeLoader``).
"""
import inspect
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from .tree import read_tree
from .utils import load_yaml

log = logging.getLogger(__name__)

DEFAULT_API = os.environ.get("CELLWIRE_MODULE_API", "https://api.observablehq.com").rstrip("/")
DEFAULT_TIMEOUT = float(os.environ.get("CELLWIRE_HTTP_TIMEOUT", "30"))

_SITE = re.compile(r"^https://observablehq\.com/", re.I)
_API = re.compile(r"^https://(api\.|beta\.|)observablehq\.com/", re.I)
_SHORTHAND = (
    re.compile(r"^(@\S+/\S+)$", re.I),  # @owner/notebook
    re.compile(r"^(d/[0-9a-z]+)$", re.I),  # d/609547f6d5a0d1ca
)


def expand_observablehq_url(source: str, api: Optional[str] = None) -> str:
    """
    Map a hosted-notebook URL or ID to the URL of its module.

    >>> expand_observablehq_url("https://observablehq.com/@fil/lasso-selection#cell-1")
    'https://api.observablehq.com/@fil/lasso-selection.js?v=3'

    Anything else is returned unchanged.
    """
    name = re.sub(r"#.*$", "", source)
    name = re.sub(r"\?.*$", "", name)

    m = _SITE.match(name)
    if m:
        name = name[m.end():]
    else:
        m = _API.match(name)
        if m:
            name = re.sub(r"\.js$", "", name[m.end():])

    for pattern in _SHORTHAND:
        if pattern.match(name):
            return f"{(api or DEFAULT_API).rstrip('/')}/{name}.js?v=3"
    return source


class TreeModuleDefinition:
    """Instantiates a serialized module tree on a runtime."""

    def __init__(self, tree: Dict[str, Any], loader: Any = None, **options: Any):
        self.tree = tree
        self.loader = loader
        self.options = options

    async def __call__(self, runtime: Any, observer: Any = None) -> Any:
        from .compiler import compile_cells

        compiled = await compile_cells(
            self.tree,
            runtime=runtime,
            observer=observer,
            loader=self.loader,
            **self.options,
        )
        return compiled.module


class HttpTreeLoader:
    def __init__(self,
                 session: Optional[Any] = None,
                 timeout: Optional[float] = None,
                 headers: Optional[Dict[str, str]] = None,
                 **options: Any):
        self.session = session
        self.timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        self.headers = headers or {}
        self.options = options

    def __call__(self, url: str) -> TreeModuleDefinition:
        http = self.session or requests
        log.debug("fetching module tree %s", url)
        response = http.get(
            url,
            headers={"Accept": "application/json", **self.headers},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return TreeModuleDefinition(response.json(), loader=self, **self.options)


class FileTreeLoader:
    """
    Serves module trees from local JSON files keyed by import source.

    Keys are expanded like import sources, so ``@owner/notebook`` and its
    module URL select the same file.
    """

    def __init__(self, mapping: Dict[str, str], base_dir: Optional[str] = None, **options: Any):
        self.mapping = {expand_observablehq_url(key): value for key, value in mapping.items()}
        self.base_dir = Path(base_dir) if base_dir else None
        self.options = options

    @classmethod
    def from_yaml(cls, path: str, **options: Any) -> "FileTreeLoader":
        data = load_yaml(path)
        sources = data.get('sources', data)
        return cls(sources, base_dir=str(Path(path).parent), **options)

    def __call__(self, url: str) -> TreeModuleDefinition:
        if url not in self.mapping:
            raise KeyError(f"no module tree configured for {url!r}")
        path = Path(self.mapping[url])
        if self.base_dir and not path.is_absolute():
            path = self.base_dir / path
        return TreeModuleDefinition(read_tree(str(path)), loader=self, **self.options)


async def resolve_import_source(*,
                                source: str,
                                runtime: Any,
                                observer: Any = None,
                                loader: Any = None,
                                **_: Any) -> Any:
    if loader is None:
        raise RuntimeError(f"a loader is required to resolve import {source!r}")
    url = expand_observablehq_url(source)
    log.debug("resolving %s as %s", source, url)
    definition = loader(url)
    if inspect.isawaitable(definition):
        definition = await definition
    module = definition(runtime, observer)
    if inspect.isawaitable(module):
        module = await module
    return module
