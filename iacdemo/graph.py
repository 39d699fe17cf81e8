"""
Resource graph: typed resource declarations and the references between them.
"""
from typing import Dict, Iterator, Optional

from iacdemo.errors import DuplicateIdentity, UnknownResource
from iacdemo.models.expression import REF, Reference, iter_references
from iacdemo.models.resource import Resource


class ResourceGraph:
    def __init__(self) -> None:
        # dicts keep insertion order, which is the declaration order
        self._resources: Dict[str, Resource] = {}

    def register(self, resource: Resource) -> Resource:
        if resource.name in self._resources:
            raise DuplicateIdentity(resource.name)
        for ref in iter_references(resource.properties):
            self._require(ref.target, resource.name)
        for dep in resource.depends_on:
            self._require(dep, resource.name)
        self._resources[resource.name] = resource
        return resource

    def add_reference(
        self, source: str, target: str, prop: str, attribute: str = REF
    ) -> Reference:
        """Point ``source.properties[prop]`` at an attribute of ``target``."""
        self._require(source)
        self._require(target, source)
        ref = Reference(target, attribute)
        self._resources[source].properties[prop] = ref
        return ref

    def add_dependency(self, source: str, target: str) -> None:
        """Record an edge that no property carries (rendered as DependsOn)."""
        self._require(source)
        self._require(target, source)
        deps = self._resources[source].depends_on
        if target not in deps:
            deps.append(target)

    def get(self, name: str) -> Resource:
        self._require(name)
        return self._resources[name]

    def find(self, name: str) -> Optional[Resource]:
        return self._resources.get(name)

    def _require(self, name: str, referrer: str = "") -> None:
        if name not in self._resources:
            raise UnknownResource(name, referrer)

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(list(self._resources.values()))

    def __len__(self) -> int:
        return len(self._resources)
