"""Module catalog and dependency graph."""

from .graph import (
    dependency_closure,
    dependents_closure,
    find_cycle,
    topological_levels,
    topological_order,
)
from .registry import (
    PROJECT_FILE_NAME,
    CyclicDependency,
    ModuleRegistry,
    ModuleRegistryError,
    UnknownModule,
)

__all__ = [
    "ModuleRegistry",
    "ModuleRegistryError",
    "UnknownModule",
    "CyclicDependency",
    "PROJECT_FILE_NAME",
    "dependency_closure",
    "dependents_closure",
    "find_cycle",
    "topological_levels",
    "topological_order",
]
