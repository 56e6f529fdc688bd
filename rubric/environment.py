from dataclasses import dataclass
from typing import Dict, Optional

from .types import ErrorSignal, Value


@dataclass
class Binding:
    value: Value
    is_constant: bool = False


class Environment:
    """Represents a scope mapping identifiers to bindings, chained to its outer scope.

    Failures are returned as `ErrorSignal` values rather than raised, so the
    evaluator can propagate them like any other result.
    """
    def __init__(self, outer: Optional['Environment'] = None):
        self.outer = outer
        self.store: Dict[str, Binding] = {}

    def get(self, name: str) -> Optional[Value]:
        # Nearest enclosing binding wins; None when unbound at every depth
        if name in self.store:
            return self.store[name].value
        if self.outer is not None:
            return self.outer.get(name)
        return None

    def define(self, name: str, value: Value, is_constant: bool = False) -> Value:
        if name in self.store:
            return ErrorSignal(f"Identifier '{name}' has already been declared in this scope.")
        self.store[name] = Binding(value, is_constant)
        return value

    def set(self, name: str, value: Value) -> Value:
        binding = self.store.get(name)
        if binding is not None:
            if binding.is_constant:
                return ErrorSignal(f"Assignment to constant variable '{name}'.")
            binding.value = value
            return value
        if self.outer is not None:
            return self.outer.set(name, value)
        return ErrorSignal(f"Identifier '{name}' not found for assignment.")

    def is_defined_here(self, name: str) -> bool:
        return name in self.store

    def extend(self) -> 'Environment':
        """Create a child scope whose outer scope is this one."""
        return Environment(outer=self)
