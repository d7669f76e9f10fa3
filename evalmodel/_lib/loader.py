"""
Rebuild the object graph from a normalized document.

This is what consumers do with the exported documents: every reference
is resolved with a direct index into the container of its type.
"""
from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Tuple

import attr as attrs

from .exceptions import (
    ExportDanglingReference,
    ExportMissingValue,
    ExportUnexpectedType,
)
from .schema import Link, RecordType, Schema
from . import writers

_Pending = Tuple[object, RecordType, Mapping[str, Any], str, Optional[Mapping[str, List[object]]]]

class Loader:
    """
    Loads documents of the given schema.

    Objects are created without calling their ``__init__``, so cycles can be restored.
    Fields that are not links get their attrs converter applied,
    e.g. to turn strings back into enums.

    Records are filled from a queue: nested value records are created
    when their parent is filled, and filled later.
    """

    def __init__(self, schema: Schema) -> None:
        self.schema = schema

    def load(self, document: Mapping[str, Any]) -> Any:
        if not isinstance(document, Mapping):
            raise ExportUnexpectedType('$', value=document, expected='mapping')
        instances: Dict[str, List[object]] = {}
        for name in self.schema.containers:
            ntype = self.schema.container(name)
            elements = document.get(name) or []
            if not isinstance(elements, list):
                raise ExportUnexpectedType(f'$.{name}', value=elements, expected='list')
            instances[name] = [ntype.cls.__new__(ntype.cls) for _ in elements]

        self._instances = instances
        self._pending: Deque[_Pending] = deque()
        try:
            for name in self.schema.containers:
                ntype = self.schema.container(name)
                for index, payload in enumerate(document.get(name) or []):
                    path = f'$.{name}[{index}]'
                    if not isinstance(payload, Mapping):
                        raise ExportUnexpectedType(path, value=payload, expected='mapping')
                    if payload.get('_id') != index:
                        raise ExportDanglingReference(path, 'the container is not normalized',
                                                      tag=name, identity=payload.get('_id'))
                    self._pending.append((instances[name][index], ntype, payload, path, None))

            rtype = self.schema.root
            root = rtype.cls.__new__(rtype.cls)
            self._pending.append((root, rtype, document, '$', instances))
            while self._pending:
                self._fill(*self._pending.popleft())
            return root
        finally:
            del self._instances
            del self._pending

    def _fill(self, obj: object, rtype: RecordType, payload: Mapping[str, Any], path: str,
              containers: Optional[Mapping[str, List[object]]] = None) -> None:
        for field in attrs.fields(type(obj)):
            name = field.name
            subpath = f'{path}.{name}'
            if containers is not None and name in containers:
                value: Any = containers[name]
            elif name in payload:
                link = rtype.links.get(name)
                if link is None:
                    value = self._convert(field, payload[name], subpath)
                else:
                    value = self._decode(payload[name], link, subpath)
            elif isinstance(field.default, attrs.Factory):
                value = field.default.factory()
            elif field.default is not attrs.NOTHING:
                value = field.default
            else:
                raise ExportMissingValue(subpath, f'{type(obj).__qualname__}.{name} is required')
            object.__setattr__(obj, name, value)

    def _convert(self, field: 'attrs.Attribute[Any]', value: Any, path: str) -> Any:
        if field.converter is None:
            return value
        try:
            return field.converter(value)
        except (ValueError, TypeError) as e:
            raise ExportUnexpectedType(path, value=value,
                                       expected=str(field.type or 'a convertible value')) from e

    def _decode(self, data: Any, link: Link, path: str) -> Any:
        if data is None:
            return None
        if not link.many:
            return self._decode_one(data, link, path)
        if not isinstance(data, list):
            raise ExportUnexpectedType(path, value=data, expected='list')
        return [self._decode_one(d, link, f'{path}[{i}]') for i, d in enumerate(data)]

    def _decode_one(self, data: Any, link: Link, path: str) -> Any:
        if not isinstance(data, Mapping):
            raise ExportUnexpectedType(path, value=data, expected='mapping')
        ntype = self.schema.node_type(link.target)
        if ntype is None:
            vtype = self.schema.lookup(link.target)
            assert vtype is not None
            obj = vtype.cls.__new__(vtype.cls)
            self._pending.append((obj, vtype, data, path, None))
            return obj
        tag = data.get('type', ntype.tag)
        if tag != ntype.tag:
            raise ExportUnexpectedType(path, value=data, expected=f'reference to {ntype.tag}')
        ident = data.get('_id')
        container = self._instances[ntype.tag]
        if not isinstance(ident, int) or isinstance(ident, bool) or not 0 <= ident < len(container):
            raise ExportDanglingReference(path, tag=ntype.tag, identity=ident)
        return container[ident]

def load(document: Mapping[str, Any], schema: Schema) -> Any:
    """
    Rebuild the root object of a normalized document.

    :raises ExportDanglingReference: If a reference cannot be resolved.
    """
    return Loader(schema).load(document)

def loads(text: str, schema: Schema, format: str = 'json') -> Any:
    """
    Like `load` but parses JSON or YAML text first.
    """
    return load(writers.loads(text, format), schema)
