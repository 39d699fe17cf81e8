"""
Stack: one deployable unit. Owns the resource graph and the policy binder
and drives the synthesis pipeline.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from iacdemo import emitter, resolver
from iacdemo.errors import DuplicateIdentity, StackStateError
from iacdemo.graph import ResourceGraph
from iacdemo.models.resource import Resource
from iacdemo.policy import PolicyBinder


class StackState(str, Enum):
    DECLARED = "Declared"
    RESOLVED = "Resolved"
    EMITTED  = "Emitted"


class Stack:
    def __init__(self, stack_id: str, description: Optional[str] = None) -> None:
        self.stack_id = stack_id
        self.description = description
        self.graph = ResourceGraph()
        self.policies = PolicyBinder(self.graph)
        self.parameters: Dict[str, Dict[str, Any]] = {}
        self.outputs: Dict[str, Dict[str, Any]] = {}
        self.state = StackState.DECLARED
        self._order: List[Resource] = []

    # ------------------------------------------------------------------ declaration
    def register(self, resource: Resource) -> Resource:
        self._require_state(StackState.DECLARED, "declare resources")
        return self.graph.register(resource)

    def add_parameter(self, name: str, type: str = "String", description: str = "") -> str:
        self._require_state(StackState.DECLARED, "declare parameters")
        if name in self.parameters:
            raise DuplicateIdentity(name)
        param = {"Type": type}
        if description:
            param["Description"] = description
        self.parameters[name] = param
        return name

    def add_output(self, name: str, value: Any, description: Optional[str] = None) -> None:
        self._require_state(StackState.DECLARED, "declare outputs")
        if name in self.outputs:
            raise DuplicateIdentity(name)
        self.outputs[name] = {"Description": description, "Value": value}

    # ------------------------------------------------------------------ pipeline
    def synthesize(self) -> List[Resource]:
        """Bind derived permissions and compute the dependency order."""
        self._require_state(StackState.DECLARED, "synthesize")
        self.policies.bind()
        self._order = resolver.resolve(self.graph)
        self.state = StackState.RESOLVED
        return list(self._order)

    def emit(self) -> Dict[str, Any]:
        """Return the template document. A stack can only be emitted once."""
        if self.state == StackState.DECLARED:
            self.synthesize()
        self._require_state(StackState.RESOLVED, "emit")
        template = emitter.emit(
            self._order,
            self.outputs,
            parameters=self.parameters,
            description=self.description,
        )
        self.state = StackState.EMITTED
        return template

    def check_declared(self, action: str) -> None:
        self._require_state(StackState.DECLARED, action)

    @property
    def order(self) -> List[Resource]:
        return list(self._order)

    def _require_state(self, expected: StackState, action: str) -> None:
        if self.state != expected:
            raise StackStateError(
                f"Cannot {action} on stack '{self.stack_id}' in state {self.state.value}; "
                "create a new Stack to synthesize again"
            )
