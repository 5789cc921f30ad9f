"""Turn raw build options into an immutable build plan."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional, Set

from libbuild.data import BuildOptions, BuildPlan, ConfigurationName
from libbuild.env import get_libbuild_build_path, get_libbuild_jobs
from libbuild.errors import LibBuildError
from libbuild.logging import get_logger
from libbuild.modules import ModuleRegistry, dependents_closure

from .configurations import make_configuration

logger = get_logger("ConfigurationResolver")


class ConfigurationError(LibBuildError):
    """Raised when build options cannot be turned into a build plan."""


class UnwritablePrefix(ConfigurationError):
    """Raised when the install prefix cannot be written by the current user."""

    def __init__(self, prefix: Path, reason: str) -> None:
        self.prefix = prefix
        self.reason = reason
        super().__init__(f"Install prefix '{prefix}' is not writable: {reason}")


def check_prefix_writable(prefix: Path) -> None:
    """Check that ``prefix`` is, or can be created as, a writable directory.

    Nothing is created. For a prefix that does not exist yet, its nearest existing ancestor
    must be a writable directory.

    Raises
    ------
    UnwritablePrefix
        If the prefix cannot be written.
    """
    prefix = Path(prefix).absolute()
    ancestor = prefix
    while not ancestor.exists():
        if ancestor.parent == ancestor:
            raise UnwritablePrefix(prefix, "no existing ancestor directory")
        ancestor = ancestor.parent
    if not ancestor.is_dir():
        if ancestor == prefix:
            raise UnwritablePrefix(prefix, "exists and is not a directory")
        raise UnwritablePrefix(prefix, f"ancestor '{ancestor}' is not a directory")
    if not os.access(ancestor, os.W_OK | os.X_OK):
        if ancestor == prefix:
            raise UnwritablePrefix(prefix, "permission denied")
        raise UnwritablePrefix(prefix, f"ancestor '{ancestor}' is not writable")


class ConfigurationResolver:
    """Resolves :class:`BuildOptions` against a module registry.

    Resolution is a pure transformation: the same options and registry always yield equal
    plans, and nothing is written to disk. All errors are raised before any compilation
    starts.
    """

    def __init__(self, registry: ModuleRegistry) -> None:
        self._registry = registry

    def resolve(self, options: BuildOptions) -> BuildPlan:
        """Resolve options into a build plan.

        Parameters
        ----------
        options : BuildOptions
            The raw user options.

        Returns
        -------
        BuildPlan
            The immutable plan.

        Raises
        ------
        UnknownModule
            If a requested or excluded module is not registered.
        ConfigurationError
            If a non-binding module is excluded, every module ends up excluded, or several
            configurations are requested without multi-config.
        UnwritablePrefix
            If the install prefix is not writable.
        """
        selected = self._select_modules(options.modules)
        excluded = self._apply_exclusions(selected, options.excluded_bindings)
        selected -= excluded
        if not selected:
            raise ConfigurationError("No modules left to build after exclusions")

        check_prefix_writable(options.install_prefix)

        build_dir = (options.build_dir or get_libbuild_build_path()).absolute()
        configurations = [
            make_configuration(name, build_dir, options.runtime_linkage_dynamic)
            for name in self._select_configurations(options)
        ]
        order = self._registry.topological_order(selected)

        plan = BuildPlan(
            package=self._registry.package,
            modules=tuple(self._registry.get(name) for name in order),
            configurations=tuple(configurations),
            shared_libs=options.shared_libs,
            runtime_linkage_dynamic=options.runtime_linkage_dynamic,
            tests_enabled=options.tests_enabled,
            install_prefix=options.install_prefix.absolute(),
            source_dir=options.source_dir.absolute(),
            build_dir=build_dir,
            jobs=options.jobs or get_libbuild_jobs(),
            excluded=tuple(sorted(excluded)),
        )
        logger.info(
            "Configured %d module(s) for %s: %s",
            len(plan.modules),
            ", ".join(c.name.value for c in plan.configurations),
            " ".join(plan.module_names()),
        )
        return plan

    def _select_modules(self, requested: List[str]) -> Set[str]:
        if not requested:
            return {m.name for m in self._registry.list_modules()}
        closure = self._registry.closure(requested)
        added = closure - set(requested)
        if added:
            logger.debug("Added required dependencies: %s", ", ".join(sorted(added)))
        return closure

    def _apply_exclusions(self, selected: Set[str], excluded_bindings: List[str]) -> Set[str]:
        """Return the modules to drop: the excluded bindings and every planned dependent."""
        excluded: Set[str] = set()
        for name in excluded_bindings:
            module = self._registry.get(name)
            if not module.optional_binding:
                raise ConfigurationError(
                    f"Module '{name}' is not an optional binding and cannot be excluded"
                )
            if name in selected:
                excluded.add(name)
        planned = {n: self._registry.get(n) for n in selected}
        dependents = dependents_closure(planned, excluded)
        if dependents:
            logger.warning(
                "Dropping module(s) that depend on excluded bindings: %s",
                ", ".join(sorted(dependents)),
            )
        return excluded | dependents

    def _select_configurations(self, options: BuildOptions) -> List[ConfigurationName]:
        names = list(dict.fromkeys(ConfigurationName(n) for n in options.configurations))
        if not options.multi_config and len(names) > 1:
            raise ConfigurationError(
                "Several configurations requested "
                f"({', '.join(n.value for n in names)}) but multi-config is disabled"
            )
        return names


def resolve_options(options: BuildOptions, registry: Optional[ModuleRegistry] = None) -> BuildPlan:
    """Resolve options against ``registry`` or the ``libbuild.json`` of the source directory."""
    if registry is None:
        registry = ModuleRegistry.from_path(options.source_dir)
    return ConfigurationResolver(registry).resolve(options)
