"""
Deferred-resolution expressions.

Values the deployment engine fills in at deploy time (resource names, ARNs,
the region). They are kept apart from literal property values so the emitter
renders them as intrinsic functions instead of strings.
"""
from dataclasses import dataclass
from typing import Any, Iterator, Tuple

# Attribute name that renders as a plain {"Ref": ...}
REF = "ref"


class Deferred:
    """Marker base class for every deferred expression."""


@dataclass(frozen=True)
class Reference(Deferred):
    target: str
    attribute: str = REF


@dataclass(frozen=True)
class Pseudo(Deferred):
    name: str          # e.g. "AWS::Region"


@dataclass(frozen=True)
class ParameterRef(Deferred):
    name: str


@dataclass(frozen=True)
class Join(Deferred):
    parts: Tuple[Any, ...]
    delimiter: str = ""


REGION = Pseudo("AWS::Region")
PARTITION = Pseudo("AWS::Partition")
URL_SUFFIX = Pseudo("AWS::URLSuffix")
ACCOUNT_ID = Pseudo("AWS::AccountId")


def iter_references(val: Any) -> Iterator[Reference]:
    """Recursively yield every Reference nested inside a property value."""
    if isinstance(val, Reference):
        yield val
    elif isinstance(val, Join):
        for part in val.parts:
            yield from iter_references(part)
    elif isinstance(val, dict):
        for v in val.values():
            yield from iter_references(v)
    elif isinstance(val, (list, tuple)):
        for item in val:
            yield from iter_references(item)
