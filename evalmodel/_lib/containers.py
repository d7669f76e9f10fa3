"""
Collect the canonical payloads per type and align the containers with the identities.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, MutableMapping, Tuple

from .exceptions import ExportNormalizationError

Payload = Dict[str, Any]

class Containers:
    """
    One ordered list of canonical payloads per node type,
    filled in the order canonical sites are discovered.
    """

    def __init__(self, names: Iterable[str]) -> None:
        self._lists: Dict[str, List[Payload]] = {name: [] for name in names}

    def add(self, tag: str, payload: Payload) -> None:
        self._lists[tag].append(payload)

    def get(self, tag: str) -> List[Payload]:
        return self._lists[tag]

    def items(self) -> Iterator[Tuple[str, List[Payload]]]:
        return iter(self._lists.items())

    def __len__(self) -> int:
        return sum(len(l) for l in self._lists.values())

def _identity(element: Any, path: str) -> int:
    if isinstance(element, dict):
        ident = element.get('_id')
        if isinstance(ident, int) and not isinstance(ident, bool):
            return ident
    raise ExportNormalizationError(path, 'element has no integer _id')

def normalize(document: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """
    Sort all top-level lists of the document by the ``_id`` of their elements,
    in place. This ensures that the identities match the index of the elements,
    so consumers can resolve any reference with ``document[container][ref['_id']]``.

    >>> normalize({'issues': [{'_id': 1}, {'_id': 0}], 'names': ['b', 'a']})
    {'issues': [{'_id': 0}, {'_id': 1}], 'names': ['b', 'a']}

    :raises ExportNormalizationError: If the identities of a container are not dense.
    """
    for name, node in document.items():
        if not (isinstance(node, list) and node and
                isinstance(node[0], dict) and '_id' in node[0]):
            continue
        path = f'$.{name}'
        node.sort(key=lambda e: _identity(e, path))
        for index, element in enumerate(node):
            if element['_id'] != index:
                raise ExportNormalizationError(f'{path}[{index}]',
                    f"expected _id {index}, got {element['_id']!r}")
    return document
