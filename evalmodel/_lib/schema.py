"""
The schema: declaration of identity types, value types and their links.

The schema is the policy table consulted by the encoder: it is built once,
at definition time, and never changes during an export.
"""
from __future__ import annotations

from typing import (
    Dict,
    Iterable,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import attr as attrs

from .exceptions import ExportSchemaError

@attrs.s(auto_attribs=True, frozen=True)
class Link:
    """
    Declares that a field holds instances of a declared node or value type.

    :param target: The class of the linked objects.
    :param many: Whether the field holds a list of objects.
    :param reference: Always encode the linked nodes as references: the field
        never claims the canonical site of a node, even on first encounter.
    :param optional: Whether the field can be None.
    """
    target: type
    many: bool = False
    reference: bool = False
    optional: bool = False

def _links(value: Optional[Mapping[str, Link]]) -> Dict[str, Link]:
    return dict(value or {})

@attrs.s(auto_attribs=True, frozen=True)
class NodeType:
    """
    An identity type: each instance is serialized once, in the
    container of the root named after `container`, other occurrences
    are encoded as references.
    """
    cls: type
    container: str
    links: Dict[str, Link] = attrs.ib(factory=dict, converter=_links, eq=False)

    @property
    def tag(self) -> str:
        return self.container

@attrs.s(auto_attribs=True, frozen=True)
class ValueType:
    """
    A record without identity, encoded inline at every occurrence.
    """
    cls: type
    links: Dict[str, Link] = attrs.ib(factory=dict, converter=_links, eq=False)

RecordType = Union[NodeType, ValueType]

class Schema:
    """
    Describes the object graph of a root document.

    >>> import attr as attrs
    >>> @attrs.s(auto_attribs=True, eq=False)
    ... class Package:
    ...     name: str
    >>> @attrs.s(auto_attribs=True, eq=False)
    ... class Issue:
    ...     message: str
    ...     pkg: Package
    >>> @attrs.s(auto_attribs=True)
    ... class Root:
    ...     issues: list
    ...     packages: list
    >>> schema = Schema(ValueType(Root),
    ...     [NodeType(Package, 'packages'),
    ...      NodeType(Issue, 'issues', links={'pkg': Link(Package, reference=True)})],
    ...     order=['issues', 'packages'])
    >>> schema.containers
    ('issues', 'packages')

    :param root: The type of the root document,
        each node type must have its container as a field of the root.
    :param nodes: The identity types.
    :param values: The value types.
    :param order: The container visitation order. It decides which
        container reaches a shared node first, so it is part of the output format.
    """

    def __init__(self, root: ValueType,
                 nodes: Iterable[NodeType],
                 values: Iterable[ValueType] = (), *,
                 order: Sequence[str]) -> None:
        self.root = root
        self.nodes: Tuple[NodeType, ...] = tuple(nodes)
        self.values: Tuple[ValueType, ...] = tuple(values)

        self._by_class: Dict[type, RecordType] = {}
        self._by_container: Dict[str, NodeType] = {}
        self._fields: Dict[type, Tuple[str, ...]] = {}

        for rtype in (root, *self.nodes, *self.values):
            if not attrs.has(rtype.cls):
                raise ExportSchemaError(None, f'{rtype.cls.__qualname__} is not an attrs class')
            if rtype.cls in self._by_class:
                raise ExportSchemaError(None, f'{rtype.cls.__qualname__} is declared twice')
            self._by_class[rtype.cls] = rtype
            self._fields[rtype.cls] = tuple(a.name for a in attrs.fields(rtype.cls))

        rootfields = self._fields[root.cls]
        for ntype in self.nodes:
            if ntype.container in self._by_container:
                raise ExportSchemaError(None, f'container {ntype.container!r} is declared twice')
            if ntype.container not in rootfields:
                raise ExportSchemaError(None, f'container {ntype.container!r} is not a field '
                                        f'of {root.cls.__qualname__}')
            if ntype.container in root.links:
                raise ExportSchemaError(None, f'container {ntype.container!r} cannot be a link')
            self._by_container[ntype.container] = ntype

        for rtype in self._by_class.values():
            self._check_links(rtype)

        self.containers: Tuple[str, ...] = self.resolve_order(order)
        if len(self.containers) != len(self._by_container):
            raise ExportSchemaError(None, f'the order must name all containers, '
                                    f'got {list(order)!r}, expected {sorted(self._by_container)!r}')

    def _check_links(self, rtype: RecordType) -> None:
        fields = self._fields[rtype.cls]
        for name, link in rtype.links.items():
            where = f'{rtype.cls.__qualname__}.{name}'
            if name not in fields:
                raise ExportSchemaError(None, f'{where} is not a field')
            target = self._by_class.get(link.target)
            if target is None or target is self.root:
                raise ExportSchemaError(None, f'{where} links to an undeclared type: '
                                        f'{link.target.__qualname__}')
            if link.reference and not isinstance(target, NodeType):
                raise ExportSchemaError(None, f'{where} cannot be a reference to a value type')

    def resolve_order(self, order: Optional[Sequence[str]] = None) -> Tuple[str, ...]:
        """
        Returns the container visitation order for a run.

        The given container names come first, the other containers
        follow in the declared order.
        """
        if order is None:
            return self.containers
        if isinstance(order, str):
            raise ExportSchemaError(None, f'the order must be a sequence of names, got {order!r}')
        resolved = list(dict.fromkeys(order))
        if len(resolved) != len(order):
            raise ExportSchemaError(None, f'the order names a container twice: {list(order)!r}')
        for name in resolved:
            if name not in self._by_container:
                raise ExportSchemaError(None, f'unknown container {name!r}, '
                                        f'expected one of {sorted(self._by_container)!r}')
        # during __init__ the declared order is not yet known.
        declared = getattr(self, 'containers', ())
        resolved.extend(n for n in declared if n not in resolved)
        return tuple(resolved)

    def lookup(self, cls: type) -> 'RecordType|None':
        """
        Find the record type declared for this class or one of its bases.
        The root type is never returned.
        """
        rtype = None
        for klass in cls.__mro__:
            rtype = self._by_class.get(klass)
            if rtype is not None:
                break
        if rtype is self.root:
            return None
        return rtype

    def node_type(self, cls: type) -> Optional[NodeType]:
        rtype = self.lookup(cls)
        return rtype if isinstance(rtype, NodeType) else None

    def value_type(self, cls: type) -> Optional[ValueType]:
        rtype = self.lookup(cls)
        return rtype if isinstance(rtype, ValueType) else None

    def container(self, name: str) -> NodeType:
        return self._by_container[name]

    def fields(self, cls: type) -> Tuple[str, ...]:
        """
        The field names of a declared class, in declaration order.
        """
        names = self._fields.get(cls)
        if names is None:
            # subclasses of declared classes can add fields.
            names = self._fields[cls] = tuple(a.name for a in attrs.fields(cls))
        return names

    def __repr__(self) -> str:
        return f'<Schema(root={self.root.cls.__qualname__}, containers={self.containers!r})>'
