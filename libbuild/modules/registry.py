"""Immutable catalog of library modules and their dependency graph."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Set, Union

from libbuild.data import Module, PackageInfo, ProjectFile, load_json_file
from libbuild.errors import LibBuildError
from libbuild.logging import get_logger

from .graph import dependency_closure, find_cycle, topological_levels, topological_order

logger = get_logger("ModuleRegistry")

PROJECT_FILE_NAME = "libbuild.json"
"""Name of the module catalog file at the root of a source tree."""


class ModuleRegistryError(LibBuildError):
    """Raised when the module catalog is inconsistent."""


class UnknownModule(ModuleRegistryError, KeyError):
    """Raised when a module name is not part of the registry."""

    def __init__(self, name: str, referenced_by: Optional[str] = None) -> None:
        self.name = name
        self.referenced_by = referenced_by
        if referenced_by:
            msg = f"Unknown module '{name}' (dependency of '{referenced_by}')"
        else:
            msg = f"Unknown module '{name}'"
        super().__init__(msg)

    def __str__(self) -> str:
        return self.args[0]


class CyclicDependency(ModuleRegistryError):
    """Raised when a dependency edge would create a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Cyclic module dependency: {' -> '.join(self.cycle)}")


class ModuleRegistry:
    """Static, immutable catalog of library modules.

    The registry is built once (from a list of modules or a ``libbuild.json`` project file)
    and never changes afterwards, so any number of build plans can be resolved against it
    concurrently. :meth:`register` returns a new registry and leaves the receiver untouched.

    Invariants: every dependency of every module is registered, and the dependency graph is
    acyclic.
    """

    _package: PackageInfo
    """Identity of the library the modules belong to."""

    _modules: Dict[str, Module]
    """Registered modules keyed by name."""

    def __init__(self, modules: Iterable[Module] = (), package: Optional[PackageInfo] = None):
        """Create a registry from a batch of modules.

        Modules may reference each other in any order inside the batch.

        Parameters
        ----------
        modules : Iterable[Module]
            The modules to register.
        package : Optional[PackageInfo]
            Package identity. Defaults to a package named "lib".

        Raises
        ------
        ValueError
            If two modules share a name.
        UnknownModule
            If a module depends on a module that is not in the batch.
        CyclicDependency
            If the dependencies form a cycle.
        """
        table: Dict[str, Module] = {}
        for module in modules:
            if module.name in table:
                raise ValueError(f"Module '{module.name}' already exists")
            table[module.name] = module
        _validate(table)
        self._modules = table
        self._package = package or PackageInfo(name="lib")

    @classmethod
    def from_project_file(cls, project: ProjectFile) -> "ModuleRegistry":
        return cls(project.modules, package=project.package)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ModuleRegistry":
        """Load a registry from a project file or a directory containing ``libbuild.json``.

        Parameters
        ----------
        path : Union[str, Path]
            Path of the project file, or of the source directory holding it.

        Returns
        -------
        ModuleRegistry
            The loaded registry.
        """
        path = Path(path)
        if path.is_dir():
            path = path / PROJECT_FILE_NAME
        project = load_json_file(ProjectFile, path)
        logger.debug("Loaded %d modules from %s", len(project.modules), path)
        return cls.from_project_file(project)

    @property
    def package(self) -> PackageInfo:
        return self._package

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, name: object) -> bool:
        return name in self._modules

    def __iter__(self) -> Iterator[Module]:
        return iter(self.list_modules())

    def list_modules(self) -> List[Module]:
        """All registered modules, sorted by name."""
        return [self._modules[name] for name in sorted(self._modules)]

    def get(self, name: str) -> Module:
        """Get a module by name.

        Raises
        ------
        UnknownModule
            If the module is not registered.
        """
        try:
            return self._modules[name]
        except KeyError:
            raise UnknownModule(name) from None

    def dependencies_of(self, name: str) -> Set[str]:
        """Names of the direct dependencies of a module.

        Raises
        ------
        UnknownModule
            If the module is not registered.
        """
        return set(self.get(name).dependencies)

    def closure(self, names: Iterable[str]) -> Set[str]:
        """Expand module names transitively over their dependencies.

        Raises
        ------
        UnknownModule
            If one of the names is not registered.
        """
        names = list(names)
        for name in names:
            self.get(name)
        return dependency_closure(self._modules, names)

    def topological_order(self, names: Optional[Iterable[str]] = None) -> List[str]:
        """Order module names (default: all) so dependencies come first."""
        return topological_order(self._modules, self._names_or_all(names))

    def topological_levels(self, names: Optional[Iterable[str]] = None) -> List[List[str]]:
        """Split module names (default: all) into dependency levels."""
        return topological_levels(self._modules, self._names_or_all(names))

    def register(self, module: Module) -> "ModuleRegistry":
        """Return a new registry that additionally contains ``module``.

        The receiver is never modified, so a failed registration registers nothing.

        Parameters
        ----------
        module : Module
            The module to add.

        Returns
        -------
        ModuleRegistry
            A new registry with the module added.

        Raises
        ------
        ValueError
            If a module with the same name is already registered.
        UnknownModule
            If one of the module's dependencies is not registered.
        CyclicDependency
            If the module depends on itself, directly or transitively.
        """
        if module.name in self._modules:
            raise ValueError(f"Module '{module.name}' already exists")
        return ModuleRegistry([*self._modules.values(), module], package=self._package)

    def register_many(self, modules: Iterable[Module]) -> "ModuleRegistry":
        """Return a new registry that additionally contains all ``modules``."""
        return ModuleRegistry([*self._modules.values(), *modules], package=self._package)

    def _names_or_all(self, names: Optional[Iterable[str]]) -> List[str]:
        if names is None:
            return list(self._modules)
        names = list(names)
        for name in names:
            self.get(name)
        return names


def _validate(modules: Dict[str, Module]) -> None:
    for module in modules.values():
        if module.name in module.dependencies:
            raise CyclicDependency([module.name, module.name])
        for dep in module.dependencies:
            if dep not in modules:
                raise UnknownModule(dep, referenced_by=module.name)
    cycle = find_cycle(modules)
    if cycle is not None:
        raise CyclicDependency(cycle)
