"""
The dual-mode encoder: serializes each node either as its canonical payload
or as a bare reference to its identity.
"""
from __future__ import annotations

import datetime
import enum
import math
from functools import partial
from pathlib import PurePath
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
)

import attr as attrs

from .containers import Containers, Payload
from .exceptions import (
    ExportCyclicValue,
    ExportMissingValue,
    ExportUnexpectedType,
    ExportUnsupportedValue,
)
from .registry import Identity, IdentityRegistry
from .schema import Link, NodeType, RecordType, Schema

if TYPE_CHECKING:
    from typing import Protocol
else:
    Protocol = object

class _Msg(Protocol):
    def __call__(self, msg: str, thresh: int = 0) -> None:
        ...

_SCALARS = (str, int, float, bool)

_Start = Callable[[Any, str], Tuple[Any, 'Optional[_Frame]']]
_Item = Tuple[Optional[str], _Start, Any, str]

@attrs.s(auto_attribs=True, eq=False)
class _Frame:
    """
    A dict or list being filled, with the items left to encode into it.

    Each item is ``(key, start, value, path)``: ``start(value, path)`` returns the
    encoded value, stored under ``key`` (appended if the key is None),
    and optionally a frame that fills it.
    """
    result: Any
    items: Iterator[_Item]
    done: Optional[Callable[[], None]] = None

class Encoder:
    """
    Encodes values into plain JSON-compatible structures.

    Canonical payloads never stay at the site that produced them: they are
    handed to the `Containers` and the site receives a reference instead.
    So a node claimed while encoding the payload of another node still ends up
    in the container of its own type.

    The traversal is depth-first, like a recursive encoder would do it, but runs on
    an explicit stack of frames: the depth of the graph is not bound by the recursion limit.

    :param type_tags: Include the container name in the references.
    """

    def __init__(self, schema: Schema,
                 registry: IdentityRegistry,
                 containers: Containers,
                 msg: _Msg, *,
                 type_tags: bool = False) -> None:
        self.schema = schema
        self.registry = registry
        self.containers = containers
        self.msg = msg
        self.type_tags = type_tags
        self._values_in_progress: Set[int] = set()

    def reference(self, ident: Identity) -> Payload:
        if self.type_tags:
            return {'type': ident.tag, '_id': ident.value}
        return {'_id': ident.value}

    # Public interface

    def claim(self, node: object, ntype: NodeType, path: str) -> Identity:
        """
        Serialize the payload of this node if it's not claimed yet.
        """
        ident, frame = self._start_claim(node, ntype, path)
        if frame is not None:
            self._drain(frame)
        return ident

    def encode_link(self, value: Any, link: Link, path: str) -> Any:
        return self._run(partial(self._start_link, link=link), value, path)

    def encode_value(self, value: Any, path: str) -> Any:
        """
        Encode a value that is not held by a link.
        """
        return self._run(self._start_value, value, path)

    # The work stack

    def _run(self, start: _Start, value: Any, path: str) -> Any:
        result, frame = start(value, path)
        if frame is not None:
            self._drain(frame)
        return result

    def _drain(self, frame: _Frame) -> None:
        stack: List[_Frame] = [frame]
        while stack:
            top = stack[-1]
            item = next(top.items, None)
            if item is None:
                stack.pop()
                if top.done is not None:
                    top.done()
                continue
            key, start, value, path = item
            encoded, child = start(value, path)
            if key is None:
                top.result.append(encoded)
            else:
                top.result[key] = encoded
            if child is not None:
                stack.append(child)

    def _field_items(self, obj: object, rtype: RecordType, path: str) -> Iterator[_Item]:
        # fields in declaration order
        for name in self.schema.fields(type(obj)):
            link = rtype.links.get(name)
            start = self._start_value if link is None else partial(self._start_link, link=link)
            yield name, start, getattr(obj, name), f'{path}.{name}'

    # Nodes and links

    def _start_claim(self, node: object, ntype: NodeType,
                     path: str) -> Tuple[Identity, Optional[_Frame]]:
        ident = self.registry.identify(node, ntype.tag, path)
        if not self.registry.claim(node):
            return ident, None
        payload: Payload = {'_id': ident.value}
        return ident, _Frame(payload, self._field_items(node, ntype, path),
                             done=partial(self._complete, node, ntype, payload))

    def _complete(self, node: object, ntype: NodeType, payload: Payload) -> None:
        self.containers.add(ntype.tag, payload)
        self.registry.complete(node)

    def _start_link(self, value: Any, path: str, link: Link) -> Tuple[Any, Optional[_Frame]]:
        if value is None:
            if link.optional:
                return None, None
            raise ExportMissingValue(path, f'expected {_describe(link)}')
        if not link.many:
            return self._start_linked(value, path, link)
        if isinstance(value, (set, frozenset)):
            raise ExportUnsupportedValue(path, 'unordered collection of linked objects',
                                         value=value)
        if not isinstance(value, (list, tuple)):
            raise ExportUnexpectedType(path, value=value, expected=_describe(link))
        result: List[Any] = []
        start = partial(self._start_linked, link=link)
        return result, _Frame(result, ((None, start, v, f'{path}[{i}]')
                                       for i, v in enumerate(value)))

    def _start_linked(self, value: Any, path: str, link: Link) -> Tuple[Any, Optional[_Frame]]:
        if not isinstance(value, link.target):
            raise ExportUnexpectedType(path, value=value, expected=link.target.__qualname__)
        ntype = self.schema.node_type(type(value))
        if ntype is None:
            return self._start_record(value, self.schema.lookup(type(value)), path)
        ident = self.registry.identify(value, ntype.tag, path)
        frame = None
        if not link.reference and self.registry.claim_state[id(value)] == IdentityRegistry.UNCLAIMED:
            self.msg(f'{path}: claims {ident}', thresh=3)
            _, frame = self._start_claim(value, ntype, path)
        return self.reference(ident), frame

    # Values

    def _start_record(self, value: object, rtype: 'RecordType|None',
                      path: str) -> Tuple[Payload, _Frame]:
        if rtype is None:
            raise ExportUnsupportedValue(path, 'undeclared record type', value=value)
        key = id(value)
        if key in self._values_in_progress:
            raise ExportCyclicValue(path, f'{type(value).__qualname__} is not '
                                    'an identity type but it references itself')
        self._values_in_progress.add(key)
        result: Payload = {}
        return result, _Frame(result, self._field_items(value, rtype, path),
                              done=partial(self._values_in_progress.discard, key))

    def _start_value(self, value: Any, path: str) -> Tuple[Any, Optional[_Frame]]:
        if isinstance(value, float) and not math.isfinite(value):
            raise ExportUnsupportedValue(path, 'non-finite float', value=value)
        if value is None or isinstance(value, _SCALARS) and not isinstance(value, enum.Enum):
            return value, None
        if isinstance(value, enum.Enum):
            return self._start_value(value.value, path)
        if isinstance(value, datetime.date):
            # datetime is a subclass of date
            return value.isoformat(), None
        if isinstance(value, PurePath):
            return value.as_posix(), None
        if self.schema.node_type(type(value)) is not None:
            raise ExportUnsupportedValue(path, 'node under a field that is not declared as a link',
                                         value=value)
        rtype = self.schema.lookup(type(value))
        if rtype is not None:
            return self._start_record(value, rtype, path)
        if isinstance(value, Mapping):
            return self._start_mapping(value, path)
        if isinstance(value, (list, tuple)):
            result: List[Any] = []
            return result, _Frame(result, ((None, self._start_value, v, f'{path}[{i}]')
                                           for i, v in enumerate(value)))
        if isinstance(value, (set, frozenset)):
            items: List[Any] = []
            return items, _Frame(items, ((None, self._start_value, v, f'{path}[{i}]')
                                         for i, v in enumerate(value)),
                                 done=partial(_sort_set, items, value, path))
        raise ExportUnsupportedValue(path, value=value)

    def _start_mapping(self, value: Mapping[Any, Any], path: str) -> Tuple[Dict[str, Any], _Frame]:
        key = id(value)
        if key in self._values_in_progress:
            raise ExportCyclicValue(path, 'the mapping contains itself')
        self._values_in_progress.add(key)
        result: Dict[str, Any] = {}
        return result, _Frame(result, self._mapping_items(value, path),
                              done=partial(self._values_in_progress.discard, key))

    def _mapping_items(self, value: Mapping[Any, Any], path: str) -> Iterator[_Item]:
        for k, v in value.items():
            if isinstance(k, enum.Enum):
                k = k.value
            if not isinstance(k, str):
                raise ExportUnsupportedValue(f'{path}.{k!r}', 'mapping keys must be strings',
                                             value=k)
            yield k, self._start_value, v, f'{path}.{k}'

def _sort_set(items: List[Any], value: Any, path: str) -> None:
    # items are encoded in place, sorting happens once they are all done.
    if not all(isinstance(v, _SCALARS) for v in items):
        raise ExportUnsupportedValue(path, 'unordered collection of records',
                                     value=value)
    try:
        items.sort()
    except TypeError:
        raise ExportUnsupportedValue(path, 'set of unorderable values', value=value)

def _describe(link: Link) -> str:
    name = link.target.__qualname__
    return f'list of {name}' if link.many else name
