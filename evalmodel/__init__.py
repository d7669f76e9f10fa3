"""
Export cyclic object graphs into flat, index-aligned documents.

Goals and non-goals
===================

The main goal of this project is to serialize the evaluated model of a license compliance
analysis (packages, issues, scan results, rule violations, dependency paths and trees)
into JSON or YAML documents that a consumer, like a web application, can load and
index randomly without walking the graph again.

It does not build the model: parsing the project files, resolving licenses and
matching resolutions is done upstream. It does not render reports either.

The format
==========

The model is a graph with cycles: an issue references its package, the package references
its issues, paths reference packages, and so on. A tree serializer would recurse forever.

Instead, each object of an identity type gets an integer identity, per type, dense and zero-based,
in the order the objects are first encountered. Each object is serialized exactly once,
in the top-level list (the *container*) of its type, and each container is sorted so
that the position of an object is its identity. Every other occurrence is replaced
by a reference: ``{"_id": 3}`` is the fourth element of the container of the linked type.

>>> from evalmodel.model import (EvaluatedModel, EvaluatedPackage,
...                              EvaluatedOrtIssue, Identifier)
>>> pkg = EvaluatedPackage(id=Identifier('PyPI', '', 'attrs', '23.1.0'))
>>> issue = EvaluatedOrtIssue(timestamp='2020-01-01T00:00:00+00:00', type='ANALYZER',
...                           source='PIP', message='cannot resolve', pkg=pkg)
>>> pkg.issues.append(issue)
>>> document = EvaluatedModel(issues=[issue], packages=[pkg]).export()
>>> document['issues'][0]['_id'], document['issues'][0]['pkg']
(0, {'_id': 0})
>>> document['packages'][0]['issues']
[{'_id': 0}]

How to use the library
======================

- Describe your model with a `Schema`: the identity types (`NodeType`) and their containers,
  the value types (`ValueType`), and which fields hold linked objects (`Link`).
  A link declared with ``reference=True`` never serializes the payload of a node,
  which lets a schema control which container reaches a shared node first.
- Create an `Exporter` with the schema and call `Exporter.export()`,
  `Exporter.dumps()` or `Exporter.dump()`.
- Use `load` to rebuild the object graph from a document.

The evaluated model and its schema are provided in `evalmodel.model`.
"""

from ._lib.schema import Schema, NodeType, ValueType, Link
from ._lib.registry import Identity, IdentityRegistry
from ._lib.containers import Containers, normalize
from ._lib.encoder import Encoder
from ._lib.walker import GraphWalker
from ._lib.exporter import Exporter, Options
from ._lib.loader import Loader, load, loads
from ._lib.writers import dumps, FORMATS
from ._lib.exceptions import *

__all__ = (

    "Schema",
    "NodeType",
    "ValueType",
    "Link",

    "Exporter",
    "Options",
    "Loader",
    "load",
    "loads",
    "dumps",
    "FORMATS",

    "Identity",
    "IdentityRegistry",
    "Containers",
    "normalize",
    "Encoder",
    "GraphWalker",

    "ExportException",
    "ExportIdentityExhausted",
    "ExportUnsupportedValue",
    "ExportUnexpectedType",
    "ExportMissingValue",
    "ExportCyclicValue",
    "ExportDanglingReference",
    "ExportNormalizationError",
    "ExportSchemaError",
)
