"""
Synthesis errors. All of them are raised while building the template and
abort synthesis; none of them is retried.
"""
from typing import List


class SynthesisError(Exception):
    pass


class DuplicateIdentity(SynthesisError):
    def __init__(self, name: str):
        super().__init__(f"Resource '{name}' is already registered in this stack")
        self.name = name


class UnknownResource(SynthesisError):
    def __init__(self, name: str, referrer: str = ""):
        msg = f"Unknown resource '{name}'"
        if referrer:
            msg += f" (referenced by '{referrer}')"
        super().__init__(msg)
        self.name = name
        self.referrer = referrer


class CyclicDependency(SynthesisError):
    def __init__(self, cycle: List[str]):
        super().__init__("Cyclic dependency: " + " -> ".join(cycle))
        self.cycle = cycle


class MissingProperty(SynthesisError):
    def __init__(self, resource: str, prop: str):
        super().__init__(f"Resource '{resource}' is missing required property '{prop}'")
        self.resource = resource
        self.property = prop


class UnknownAttribute(SynthesisError):
    def __init__(self, resource: str, attribute: str):
        super().__init__(f"Resource '{resource}' has no attribute '{attribute}'")
        self.resource = resource
        self.attribute = attribute


class StackStateError(SynthesisError):
    pass


class ConfigError(Exception):
    pass
