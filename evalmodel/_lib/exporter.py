"""
High-level export interface.
"""
from __future__ import annotations

import sys
import time
from typing import Any, Dict, Optional, TextIO, Tuple

import attr as attrs

from .containers import Containers, normalize
from .encoder import Encoder
from .registry import MAX_IDENTITIES, IdentityRegistry
from .schema import Schema
from .walker import GraphWalker
from . import writers

def _order(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None or isinstance(value, str):
        # strings are rejected by Schema.resolve_order()
        return value
    return tuple(value)

@attrs.s(auto_attribs=True, frozen=True, kw_only=True)
class Options:
    """
    Configuration of an `Exporter`.

    :param order: Container visitation order, containers not listed
        follow in the order declared by the schema.
    :param type_tags: Write the container name in references: ``{"type": "packages", "_id": 0}``
        instead of ``{"_id": 0}``.
    :param max_identities: Maximum number of nodes per type.
    :param indent: Indentation of the textual forms.
    :param verbosity: Verbosity of the messages written to `outstream`.
    """
    order: Optional[Tuple[str, ...]] = attrs.ib(default=None, converter=_order)
    type_tags: bool = False
    max_identities: int = MAX_IDENTITIES
    indent: int = 2
    verbosity: int = 0
    outstream: TextIO = sys.stderr

class Exporter:
    """
    Export a root document into its flat, index-aligned form.

    Each call builds its own registry and containers, so a single exporter
    can be used for any number of exports.

    >>> from evalmodel.model import EVALUATED_MODEL_SCHEMA, EvaluatedModel
    >>> exporter = Exporter(EVALUATED_MODEL_SCHEMA, order=['issues', 'packages'])
    >>> document = exporter.export(EvaluatedModel())
    >>> document['packages'], document['issues']
    ([], [])

    :see: `Options`
    """

    def __init__(self, schema: Schema, **kw: Any) -> None:
        """
        Create a new exporter.

        :param schema: The schema of the exported documents.
        :param kw: All other parameters are passed to `Options` constructor.
        """
        self.schema = schema
        self.options = Options(**kw)
        # fail early on invalid orders.
        self.order = schema.resolve_order(self.options.order)

    def export(self, root: object) -> Dict[str, Any]:
        """
        Build the normalized document of this root.

        :raises ExportException: If the root cannot be exported.
        """
        t0 = time.time()

        registry = IdentityRegistry(self.options.max_identities)
        containers = Containers(self.schema.containers)
        encoder = Encoder(self.schema, registry, containers, self.msg,
                          type_tags=self.options.type_tags)
        document = GraphWalker(self.schema, encoder, self.order, self.msg).walk(root)
        normalize(document)

        t1 = time.time()
        for tag, count in registry.counts().items():
            self.msg(f'{tag}: {count} identities', thresh=1)
        self.msg(f"export took {t1-t0} seconds", thresh=1)
        return document

    def dumps(self, root: object, format: str = 'json') -> str:
        """
        Export the root as JSON or YAML text.
        """
        return writers.dumps(self.export(root), format, indent=self.options.indent)

    def dump(self, root: object, stream: TextIO, format: str = 'json') -> None:
        """
        Export the root to the stream. Nothing is written if the export fails.
        """
        text = self.dumps(root, format)
        stream.write(text)

    def msg(self, msg: str, thresh: int = 0) -> None:
        """
        Report a message if the verbosity is at least `thresh`.
        """
        if self.options.verbosity < thresh:
            return
        print(msg, file=self.options.outstream)
