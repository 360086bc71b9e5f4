import logging
import re
from collections import deque
from typing import Any, Dict, Iterator, List, Optional, Tuple

log = logging.getLogger(__name__)

Node = Dict[str, Any]

VIEW = "ViewExpression"
MUTABLE = "MutableExpression"
PLAIN_TYPES = {"Identifier"}

# callees whose literal first argument is recorded in ``constants``
CONSTANT_CALLEES = {"FileAttachment", "Secret", "DatabaseClient"}
SCALAR_LITERALS = (str, int, float, bool)


class CellCode:
    def __init__(self, references: List[str], code: str, constants: Optional[Dict[str, Dict[Any, Any]]] = None):
        self.references = references
        self.code = code
        self.constants = constants

    def __iter__(self):
        # allows ``references, code, constants = get_cell_code_and_references(...)``
        return iter((self.references, self.code, self.constants))

    def __repr__(self) -> str:
        return f"CellCode(references={self.references!r}, code={self.code!r}, constants={self.constants!r})"


def _is_node(value: Any) -> bool:
    return isinstance(value, dict) and 'type' in value


def walk(node: Optional[Node]) -> Iterator[Node]:
    """Yield ``node`` and every ESTree node below it, breadth first (like ``ast.walk``)."""
    if not _is_node(node):
        return
    todo = deque([node])
    while todo:
        current = todo.popleft()
        yield current
        for value in current.values():
            if _is_node(value):
                todo.append(value)
            elif isinstance(value, list):
                todo.extend(item for item in value if _is_node(item))


def reference_name(ref: Optional[Node]) -> Optional[str]:
    """Name under which ``ref`` is known to the dataflow graph."""
    if not ref:
        return None
    if ref.get('type') == VIEW:
        return "viewof " + ref['id']['name']
    if ref.get('type') == MUTABLE:
        return "mutable " + ref['id']['name']
    return ref.get('name')


def function_name(name: Optional[str]) -> str:
    if not name:
        return ""
    name = re.sub(r"^mutable ", "mutable_initial_", name)
    return re.sub(r"\s", "_", name)


def function_header(params: List[str], name: str = "", is_async: bool = False, generator: bool = False) -> str:
    keyword = "function*" if generator else "function"
    if is_async:
        keyword = "async " + keyword
    return f"{keyword} {name}({','.join(params)})"


def _collect_constants(body: Node) -> Optional[Dict[str, Dict[Any, Any]]]:
    constants: Dict[str, Dict[Any, Any]] = {}
    for node in walk(body):
        if node.get('type') != 'CallExpression':
            continue
        callee = node.get('callee') or {}
        callee_name = callee.get('name') if callee.get('type') == 'Identifier' else None
        if callee_name not in CONSTANT_CALLEES:
            continue
        index = constants.setdefault(callee_name, {})
        args = node.get('arguments') or []
        if args and args[0].get('type') == 'Literal':
            value = args[0].get('value')
            # regex and bigint literals serialize to non-scalar values
            if isinstance(value, SCALAR_LITERALS):
                index[value] = value
    return constants or None


def utf16_index(text: str) -> List[int]:
    """Map UTF-16 code unit offsets (as reported by the parser) to ``str`` indexes."""
    index: List[int] = []
    for i, ch in enumerate(text):
        index.append(i)
        if ord(ch) > 0xFFFF:
            index.append(i)
    index.append(len(text))
    return index


def _occurrences(body: Node, ref: Node) -> Iterator[Node]:
    inner = ref['id']['name']
    for node in walk(body):
        if node.get('type') == ref['type'] and (node.get('id') or {}).get('name') == inner:
            yield node


def _apply_replacements(text: str, offset: int, replacements: Dict[int, Tuple[int, str]]) -> str:
    shift = 0
    for start in sorted(replacements):
        end, replacement = replacements[start]
        lo, hi = start - offset + shift, end - offset + shift
        text = text[:lo] + replacement + text[hi:]
        shift += len(replacement) - (end - start)
    return text


def get_cell_code_and_references(cell: Node) -> CellCode:
    """
    Compute the dependency list of a parsed cell and emit its function source.

    ``cell`` is the parser output: ``body`` (an ESTree node with offsets into
    ``input``), ``references``, ``id``, ``async`` and ``generator``. Each
    ``viewof x`` occurrence in the body is replaced by the parameter token
    bound to it and each ``mutable x`` occurrence by ``<token>.value``.
    """
    body = cell['body']
    source = cell.get('input') or ""
    pos = utf16_index(source)
    body_start, body_end = pos[body['start']], pos[body['end']]
    body_text = source[body_start:body_end]

    count = 0
    ref_index: Dict[str, str] = {}
    references: List[str] = []
    params: List[str] = []
    replacements: Dict[int, Tuple[int, str]] = {}

    for ref in cell.get('references') or []:
        kind = ref.get('type')
        if kind not in PLAIN_TYPES and kind not in (VIEW, MUTABLE):
            log.warning("reference of unsupported type %r treated as plain", kind)
        ref_name = reference_name(ref)
        token = ref_index.get(ref_name) or ref.get('name')
        if not token:
            token = f"${count}"
            count += 1
        ref_name = ref_name or token

        if kind in (VIEW, MUTABLE):
            replacement = token if kind == VIEW else token + ".value"
            for node in _occurrences(body, ref):
                replacements[pos[node['start']]] = (pos[node['end']], replacement)

        if ref_name not in ref_index:
            ref_index[ref_name] = token
            references.append(ref_name)
            params.append(token)

    body_text = _apply_replacements(body_text, body_start, replacements)
    if body.get('type') != 'BlockStatement':
        body_text = f"{{\nreturn ({body_text});\n}}"

    header = function_header(
        params,
        function_name(reference_name(cell.get('id'))),
        is_async=bool(cell.get('async')),
        generator=bool(cell.get('generator')),
    )
    return CellCode(references, f"{header} {body_text}", _collect_constants(body))
