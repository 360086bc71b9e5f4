import html
import os
from typing import Any, Dict, Optional, Union

import networkx as nx

from .tree import read_tree

try:
    from pyvis.network import Network
    PYVIS_AVAILABLE = True
except ImportError:
    PYVIS_AVAILABLE = False

_COLORS = {'cell': '#97c2fc', 'import': '#ffb347', 'source': '#ffd27f', 'external': '#d3d3d3'}


def build_dependency_graph(tree: Dict[str, Any]) -> nx.DiGraph:
    """
    Dependency graph of a module tree.

    Nodes are the names a module defines (anonymous cells become ``cell_<i>``)
    plus import sources and names referenced but never defined (``external``).
    Edges run from a dependency to the cell that uses it.
    """
    G = nx.DiGraph()
    for i, cell in enumerate(tree.get('cells') or []):
        if cell.get('type') == 'import':
            source = cell['source']
            G.add_node(source, kind='source', code='')
            for spec in cell.get('specifiers') or []:
                G.add_node(spec['alias'], kind='import', code=f"{spec['name']} from {source}")
                G.add_edge(source, spec['alias'], label=spec['name'])
            continue
        if cell.get('type') != 'cell':
            continue
        node = cell.get('name') or f"cell_{i}"
        G.add_node(node, kind='cell', code=cell.get('code', ''))
        for ref in cell.get('references') or []:
            if ref not in G:
                G.add_node(ref, kind='external', code='')
            G.add_edge(ref, node, label=ref)
    return G


def visualize_tree(tree: Union[str, Dict[str, Any]],
                   output: Optional[str] = None,
                   snippet_lines: int = 25,
                   html_tooltips: bool = False) -> Optional[str]:
    if not PYVIS_AVAILABLE:
        print("Install pyvis to generate interactive graph (pip install pyvis)")
        return None

    if isinstance(tree, str):
        if output is None:
            output = os.path.splitext(tree)[0] + '.html'
        tree = read_tree(tree)
    if output is None:
        output = 'module_graph.html'

    G = build_dependency_graph(tree)
    net = Network(height='600px', width='100%', directed=True, cdn_resources='remote')

    for node, data in G.nodes(data=True):
        kind = data.get('kind', 'cell')
        code_lines = (data.get('code') or '').rstrip().splitlines()
        truncated = len(code_lines) > snippet_lines
        shown = code_lines[:snippet_lines]
        snippet = html.escape("\n".join(shown)) + ("\n…" if truncated else "")
        if html_tooltips:
            title = (
                f"<div style='font-family:sans-serif;max-width:520px'>"
                f"<b>{html.escape(str(node))}</b> <i>({kind})</i>"
                f"<pre>{snippet}</pre></div>"
            )
        else:
            title = f"{node} ({kind})\n{snippet}".rstrip()
        net.add_node(str(node), label=str(node), title=title, color=_COLORS.get(kind, '#97c2fc'))

    for u, v, data in G.edges(data=True):
        net.add_edge(str(u), str(v), title=data.get('label', ''))

    net.write_html(output)
    print(f"Interactive graph written to {output}")
    return output
