"""
Exceptions raised while exporting or loading a model.

All errors are raised synchronously to the caller, no partial output is ever written.
The `path` of an exception is the location of the offending value,
expressed like ``$.issues[0].pkg``.
"""
from __future__ import annotations

import abc
import attr as attrs
from typing import Optional

__all__ = (
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

@attrs.s(auto_attribs=True)
class ExportException(Exception, abc.ABC):
    """
    Base exception for the library.
    """

    path: 'str|None'
    desrc: Optional[str] = None

    def location(self) -> str:
        return self.path or '?'

    @abc.abstractmethod
    def msg(self) -> str:
        ...

    def __str__(self) -> str:
        return f'{self.location()}: {self.msg()}'

@attrs.s(auto_attribs=True)
class ExportIdentityExhausted(ExportException):
    """
    More nodes of a given type than the identity space can represent.
    """
    tag: str = attrs.ib(kw_only=True)
    count: int = attrs.ib(kw_only=True)
    limit: int = attrs.ib(kw_only=True)
    desrc: None = attrs.ib(init=False, default=None)

    def msg(self) -> str:
        return (f"Identity space exhausted for {self.tag!r}: "
                f"{self.count} identities, the limit is {self.limit}")

@attrs.s(auto_attribs=True)
class ExportUnsupportedValue(ExportException):
    """
    A value cannot be represented in the output document.
    """
    value: object = attrs.ib(kw_only=True, default=None, repr=False)

    def msg(self) -> str:
        kind = type(self.value).__name__
        if self.desrc:
            return f"Unsupported value of type {kind!r}, {self.desrc}"
        return f"Unsupported value of type {kind!r}"

@attrs.s(auto_attribs=True)
class ExportUnexpectedType(ExportException):
    """
    A link holds an instance of the wrong class.
    """
    value: object = attrs.ib(kw_only=True, repr=False)
    expected: str = attrs.ib(kw_only=True)
    desrc: None = attrs.ib(init=False, default=None)

    def msg(self) -> str:
        return f"Expected {self.expected}, got: {type(self.value).__name__}"

class ExportMissingValue(ExportException):
    """
    A link that is not optional holds None, or a loaded payload misses a field.
    """

    def msg(self) -> str:
        return f"Missing value, {self.desrc}"

class ExportCyclicValue(ExportException):
    """
    A value type references itself.
    Only node types can form cycles.
    """

    def msg(self) -> str:
        return f"Cyclic value, {self.desrc}"

@attrs.s(auto_attribs=True)
class ExportDanglingReference(ExportException):
    """
    A reference that has no canonical payload.
    """
    tag: str = attrs.ib(kw_only=True)
    identity: object = attrs.ib(kw_only=True)

    def msg(self) -> str:
        text = f"Dangling reference to {self.tag}[{self.identity!r}]"
        if self.desrc:
            text += f", {self.desrc}"
        return text

class ExportNormalizationError(ExportException):
    """
    A container cannot be index-aligned: its identities are not dense.
    Shouldn't be raised under normal usage of the library.
    """

    def msg(self) -> str:
        return f"Container is not dense, {self.desrc}"

class ExportSchemaError(ExportException):
    """
    The schema or the traversal order is invalid.
    """

    def msg(self) -> str:
        return f"Invalid schema, {self.desrc}"
