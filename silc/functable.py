import logging
from typing import Dict, Iterator, Optional, Tuple

from .ast import Declaration, ExternFn, Fn, Root
from .diagnostics import DuplicateDefinitionError, InternalInvariantError, Source

logger = logging.getLogger(__name__)


class FunctionTable:
    """Name -> declaring node for every top-level fn / extern fn.

    Entries keep source order; the code generator walks them in that order.
    """

    def __init__(self, src: Optional[Source] = None):
        self.src = src
        self._entries: Dict[str, Declaration] = {}

    @classmethod
    def build(cls, root: Root, src: Optional[Source] = None) -> "FunctionTable":
        table = cls(src)
        for decl in root.declarations:
            table.register(decl)
        logger.debug("function table: %d entries", len(table))
        return table

    def register(self, decl: Declaration):
        if not isinstance(decl, (Fn, ExternFn)):
            raise InternalInvariantError(
                f"unexpected top-level node {type(decl).__name__}", self.src, getattr(decl, "pos", None))
        name = decl.prototype.name
        first = self._entries.get(name)
        if first is not None:
            raise DuplicateDefinitionError(name, self.src, decl.pos, first_pos=first.pos)
        self._entries[name] = decl

    def get(self, name: str) -> Optional[Declaration]:
        return self._entries.get(name)

    def items(self) -> Iterator[Tuple[str, Declaration]]:
        return iter(self._entries.items())

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
