#!/usr/bin/env python
import argparse
import logging

from cellwire.parse import parse_observable_cell
from cellwire.resolve import expand_observablehq_url
from cellwire.tree import CodeTreeBuilder, write_tree
from cellwire.utils import load_parsed_cells, load_yaml
from cellwire.validate_tree import validate_tree
from cellwire.visualize import visualize_tree

log = logging.getLogger("cellwire")


def cmd_build(args):
    meta = load_yaml(args.meta) if args.meta else {}
    cells = load_parsed_cells(args.cells)

    builder = CodeTreeBuilder(meta=meta)
    for cell in cells:
        parse_observable_cell(cell, builder)
    log.debug("%d parsed cell(s) produced %d descriptor(s)", len(cells), len(builder.result['cells']))

    out = write_tree(builder.result, args.out)
    print(f"Module tree written to {out}")


def cmd_vis(args):
    visualize_tree(
        args.tree,
        output=args.output,
        snippet_lines=args.lines,
        html_tooltips=args.html_tooltips,
    )


def cmd_validate(args):
    ok = validate_tree(args.tree, verbose=True)
    if not ok:
        raise SystemExit(2)


def cmd_resolve(args):
    print(expand_observablehq_url(args.source))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Compile parsed notebook cells into module trees and inspect them'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest='cmd', required=True)

    pb = sub.add_parser('build', help='Create a module tree from parsed cells')
    pb.add_argument('cells', help='JSON file with parser output (list of cells)')
    pb.add_argument('--out', default='module.json', help='Output path of the module tree')
    pb.add_argument('--meta', help='YAML file with metadata stored in the tree')
    pb.set_defaults(func=cmd_build)

    pv = sub.add_parser('vis', help='Visualize the dependency graph of a module tree')
    pv.add_argument('tree', help='Module tree JSON file')
    pv.add_argument('--output', help='HTML output path (default: next to the tree)')
    pv.add_argument('--lines', type=int, default=25, help='Number of code lines to show per node')
    pv.add_argument('--html-tooltips', action='store_true', help='Render HTML tooltips (pyvis titles)')
    pv.set_defaults(func=cmd_vis)

    pval = sub.add_parser('validate', help='Validate a module tree')
    pval.add_argument('tree', help='Module tree JSON file')
    pval.set_defaults(func=cmd_validate)

    pr = sub.add_parser('resolve', help='Print the module URL an import source resolves to')
    pr.add_argument('source', help='Import source, e.g. @owner/notebook')
    pr.set_defaults(func=cmd_resolve)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )
    args.func(args)


if __name__ == '__main__':
    main()
