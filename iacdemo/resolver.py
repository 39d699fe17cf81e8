from typing import Dict, List

from iacdemo.errors import CyclicDependency, UnknownResource
from iacdemo.graph import ResourceGraph
from iacdemo.models.resource import Resource

_VISITING = 1
_VISITED = 2


def resolve(graph: ResourceGraph) -> List[Resource]:
    """
    Return every resource in an order where each one comes after all the
    resources it references. Ties keep declaration order.
    """
    marks: Dict[str, int] = {}
    order: List[Resource] = []
    path: List[str] = []

    def visit(resource: Resource) -> None:
        state = marks.get(resource.name)
        if state == _VISITED:
            return
        if state == _VISITING:
            start = path.index(resource.name)
            raise CyclicDependency(path[start:] + [resource.name])

        marks[resource.name] = _VISITING
        path.append(resource.name)
        for dep in sorted(resource.references):
            target = graph.find(dep)
            if target is None:
                raise UnknownResource(dep, resource.name)
            visit(target)
        path.pop()
        marks[resource.name] = _VISITED
        order.append(resource)

    for resource in graph:
        visit(resource)

    return order
