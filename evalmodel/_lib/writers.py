"""
Textual forms of a normalized document.
"""
from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, List, Mapping, Optional, Set, Tuple, Union

import yaml

from .exceptions import ExportUnsupportedValue

FORMATS = ('json', 'yaml')

def dumps(document: Mapping[str, Any], format: str = 'json', *, indent: int = 2) -> str:
    """
    Render the document as pretty printed JSON or block style YAML.
    Keys are written in document order.

    :raises ExportUnsupportedValue: If the document holds a non-finite float,
        or is nested too deeply to be rendered.
    """
    if format not in FORMATS:
        raise ValueError(f'unknown format {format!r}, expected one of {FORMATS}')
    try:
        if format == 'json':
            return json.dumps(document, indent=indent, ensure_ascii=False, allow_nan=False) + '\n'
        found = _non_finite(document)
        if found is not None:
            raise ExportUnsupportedValue(found[0], 'non-finite float', value=found[1])
        return yaml.safe_dump(dict(document), sort_keys=False,
                              default_flow_style=False,
                              allow_unicode=True, indent=indent)
    except RecursionError:
        raise ExportUnsupportedValue('$', f'the document is nested too deeply for the {format} writer',
                                     value=document)
    except ValueError as e:
        found = _non_finite(document)
        if found is None:
            raise
        raise ExportUnsupportedValue(found[0], 'non-finite float', value=found[1]) from e

def _non_finite(document: Mapping[str, Any]) -> Optional[Tuple[str, float]]:
    # the first non-finite float and its path, if any.
    stack: List[Tuple[str, Any]] = [('$', document)]
    seen: Set[int] = set()
    while stack:
        path, node = stack.pop()
        if isinstance(node, float) and not math.isfinite(node):
            return path, node
        if isinstance(node, (Mapping, list, tuple)):
            if id(node) in seen:
                continue
            seen.add(id(node))
        if isinstance(node, Mapping):
            stack.extend(reversed([(f'{path}.{k}', v) for k, v in node.items()]))
        elif isinstance(node, (list, tuple)):
            stack.extend(reversed([(f'{path}[{i}]', v) for i, v in enumerate(node)]))
    return None

def loads(text: str, format: str = 'json') -> Any:
    try:
        if format == 'json':
            return json.loads(text)
        if format == 'yaml':
            return yaml.safe_load(text)
    except RecursionError:
        raise ValueError(f'the document is nested too deeply for the {format} reader')
    raise ValueError(f'unknown format {format!r}, expected one of {FORMATS}')

def guess_format(path: Union[str, Path]) -> str:
    suffix = Path(path).suffix.lower()
    if suffix == '.json':
        return 'json'
    if suffix in ('.yml', '.yaml'):
        return 'yaml'
    raise ValueError(f'cannot guess the format of {str(path)!r}, '
                     'expected a .json, .yml or .yaml file')
