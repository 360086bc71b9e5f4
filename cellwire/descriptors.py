"""
Cell descriptors emitted by the visitors and consumed by listeners.

Two kinds exist:

- ``ValueCell``: a named (or anonymous) node with its dependency names and
  the generated function source.
- ``ImportCell``: an import statement with its specifiers and injections.

Both serialize to the JSON shapes used in module trees::

    {"type": "cell", "name": ..., "references": [...], "code": ..., "constants": {...}}
    {"type": "import", "source": ..., "specifiers": [...], "injections": [...]}
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

Constants = Dict[str, Dict[Any, Any]]


@dataclass(frozen=True)
class Binding:
    """A (name, alias) pair of an import specifier or injection."""

    name: str
    alias: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "alias": self.alias}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Binding":
        name = data["name"]
        return cls(name, data.get("alias") or name)


@dataclass(frozen=True)
class ValueCell:
    name: Optional[str]
    references: List[str] = field(default_factory=list)
    code: str = ""
    constants: Optional[Constants] = None

    type = "cell"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "references": list(self.references),
            "code": self.code,
        }
        if self.constants:
            out["constants"] = self.constants
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueCell":
        return cls(
            name=data.get("name"),
            references=list(data.get("references") or []),
            code=data.get("code", ""),
            constants=data.get("constants") or None,
        )


@dataclass(frozen=True)
class ImportCell:
    source: str
    specifiers: List[Binding] = field(default_factory=list)
    injections: List[Binding] = field(default_factory=list)

    type = "import"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "source": self.source,
            "specifiers": [b.to_dict() for b in self.specifiers],
            "injections": [b.to_dict() for b in self.injections],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImportCell":
        return cls(
            source=data["source"],
            specifiers=[Binding.from_dict(d) for d in data.get("specifiers") or []],
            injections=[Binding.from_dict(d) for d in data.get("injections") or []],
        )


Descriptor = Union[ValueCell, ImportCell]


def cell_from_dict(data: Union[Dict[str, Any], Descriptor]) -> Descriptor:
    """Return a descriptor for ``data``; descriptor objects pass through."""
    if isinstance(data, (ValueCell, ImportCell)):
        return data
    kind = data.get("type")
    if kind == "cell":
        return ValueCell.from_dict(data)
    if kind == "import":
        return ImportCell.from_dict(data)
    raise ValueError(f"unknown cell descriptor type: {kind!r}")
