"""
Depth-first traversal of the root document, in the declared container order.
"""
from __future__ import annotations

from typing import Any, Dict, Sequence

from .encoder import Encoder, _Msg
from .exceptions import (
    ExportDanglingReference,
    ExportMissingValue,
    ExportUnexpectedType,
    ExportUnsupportedValue,
)
from .schema import Schema

class GraphWalker:
    """
    Visits the containers of the root in the given order, each container
    element in list order and each field in declaration order, then the other fields
    of the root in declaration order.

    The visitation order decides which site reaches a shared node first,
    and therefore which identity it gets: the same input walked in the same
    order always produces the same document.
    """

    def __init__(self, schema: Schema, encoder: Encoder,
                 order: Sequence[str], msg: _Msg) -> None:
        self.schema = schema
        self.encoder = encoder
        self.order = tuple(order)
        self.msg = msg

    def walk(self, root: object) -> Dict[str, Any]:
        """
        Encode the root document.

        The containers of the returned document hold the canonical payloads
        in discovery order, see `normalize`.

        :raises ExportDanglingReference: If a node is only ever reached by
            reference-only links, so it has no canonical payload.
        """
        rtype = self.schema.root
        if not isinstance(root, rtype.cls):
            raise ExportUnexpectedType('$', value=root, expected=rtype.cls.__qualname__)

        for name in self.order:
            self._walk_container(root, name)

        others: Dict[str, Any] = {}
        for name in self.schema.fields(type(root)):
            if name in self.order:
                continue
            value = getattr(root, name)
            link = rtype.links.get(name)
            if link is None:
                others[name] = self.encoder.encode_value(value, f'$.{name}')
            else:
                others[name] = self.encoder.encode_link(value, link, f'$.{name}')

        for ident, path in self.encoder.registry.unclaimed():
            raise ExportDanglingReference(path, 'the node is only reached by reference-only links',
                                          tag=ident.tag, identity=ident.value)

        document: Dict[str, Any] = {}
        for name in self.schema.fields(type(root)):
            if name in self.order:
                document[name] = self.encoder.containers.get(name)
            else:
                document[name] = others[name]
        return document

    def _walk_container(self, root: object, name: str) -> None:
        ntype = self.schema.container(name)
        path = f'$.{name}'
        elements = getattr(root, name)
        if elements is None:
            raise ExportMissingValue(path, f'expected list of {ntype.cls.__qualname__}')
        if isinstance(elements, (set, frozenset)):
            raise ExportUnsupportedValue(path, 'unordered container', value=elements)
        if not isinstance(elements, (list, tuple)):
            raise ExportUnexpectedType(path, value=elements,
                                       expected=f'list of {ntype.cls.__qualname__}')
        before = len(self.encoder.containers.get(name))
        for index, node in enumerate(elements):
            if not isinstance(node, ntype.cls):
                raise ExportUnexpectedType(f'{path}[{index}]', value=node,
                                           expected=ntype.cls.__qualname__)
            self.encoder.claim(node, ntype, f'{path}[{index}]')
        self.msg(f'walked {name}: {len(elements)} elements, '
                 f'{len(self.encoder.containers.get(name)) - before} payloads added', thresh=2)
