"""
Tests for the module dependency graph.
"""

from cellwire.visualize import build_dependency_graph, visualize_tree

TREE = {
    'meta': {},
    'cells': [
        {'type': 'cell', 'name': 'total', 'references': ['data', 'Generators'], 'code': 'function total(data,Generators) {}'},
        {'type': 'cell', 'name': 'data', 'references': [], 'code': 'function data() {}'},
        {'type': 'cell', 'name': None, 'references': ['total'], 'code': 'function (total) {}'},
        {'type': 'import', 'source': '@owner/nb', 'specifiers': [{'name': 'chart', 'alias': 'plot'}], 'injections': []},
    ],
}


class TestDependencyGraph:
    def test_nodes_and_kinds(self):
        G = build_dependency_graph(TREE)
        kinds = dict(G.nodes(data='kind'))
        assert kinds == {
            'total': 'cell',
            'data': 'cell',
            'Generators': 'external',
            'cell_2': 'cell',
            '@owner/nb': 'source',
            'plot': 'import',
        }

    def test_edges_point_to_dependents(self):
        G = build_dependency_graph(TREE)
        assert set(G.edges()) == {
            ('data', 'total'),
            ('Generators', 'total'),
            ('total', 'cell_2'),
            ('@owner/nb', 'plot'),
        }


class TestVisualizeTree:
    def test_writes_html(self, tmp_path, capsys):
        output = tmp_path / "graph.html"
        path = visualize_tree(TREE, output=str(output))
        assert path == str(output)
        assert output.exists()
        assert "Interactive graph written to" in capsys.readouterr().out
