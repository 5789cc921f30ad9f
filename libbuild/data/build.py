"""Strong-typed data definitions for build options, configurations and plans."""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import Field, field_validator

from libbuild.errors import UnknownConfiguration

from .module import Module, PackageInfo
from .utils import BaseModelWithDocstrings, FrozenModelWithDocstrings, NonEmptyString


class ConfigurationName(str, Enum):
    """Named build variants.

    Each variant selects a distinct set of optimisation and debug flags.
    """

    DEBUG = "Debug"
    """No optimisation, full debug information."""
    RELEASE = "Release"
    """Optimised, assertions disabled."""
    REL_WITH_DEB_INFO = "RelWithDebInfo"
    """Optimised with debug information."""
    MIN_SIZE_REL = "MinSizeRel"
    """Optimised for size."""


class LibraryKind(str, Enum):
    """Linkage mode of the produced module libraries."""

    STATIC = "static"
    """Static archives (``.a``)."""
    SHARED = "shared"
    """Shared objects (``.so`` / ``.dylib``)."""


class BuildOptions(BaseModelWithDocstrings):
    """Raw, user-supplied build options.

    All fields except ``install_prefix`` have default values to make configuration optional.
    """

    install_prefix: Path
    """Installation prefix. Must be writable (or creatable) by the current user."""
    modules: List[NonEmptyString] = Field(default_factory=list)
    """Requested module subset. Empty means every module of the registry."""
    multi_config: bool = False
    """Build every requested configuration side by side instead of a single one."""
    tests_enabled: bool = False
    """Compile the per-module test programs."""
    shared_libs: bool = False
    """Build shared libraries instead of static archives."""
    runtime_linkage_dynamic: bool = False
    """Link the compiler runtime dynamically. When False, ``-static-libgcc`` is used."""
    excluded_bindings: List[NonEmptyString] = Field(default_factory=list)
    """Optional binding modules to leave out of the plan."""
    configurations: List[ConfigurationName] = Field(
        default_factory=lambda: [ConfigurationName.RELEASE]
    )
    """Requested configuration names, in build order."""
    source_dir: Path = Path(".")
    """Root directory that module source and header paths are relative to."""
    build_dir: Optional[Path] = None
    """Build tree. Defaults to LIBBUILD_BUILD_PATH or ./build."""
    jobs: Optional[int] = Field(default=None, ge=1)
    """Size of the compilation worker pool. Defaults to LIBBUILD_JOBS or the CPU count."""

    @field_validator("configurations")
    @classmethod
    def _non_empty_configurations(cls, v: List[ConfigurationName]) -> List[ConfigurationName]:
        if not v:
            raise ValueError("At least one configuration must be requested")
        return v


class BuildConfiguration(FrozenModelWithDocstrings):
    """A concrete build variant with its flags and output directory."""

    name: ConfigurationName
    """The configuration name."""
    compile_flags: Tuple[str, ...] = ()
    """Optimisation and debug flags passed to every compile step."""
    link_flags: Tuple[str, ...] = ()
    """Runtime linkage flags passed to every link step."""
    output_dir: Path
    """Directory holding the objects, libraries, staged headers and tests of this variant."""

    @property
    def lib_dir(self) -> Path:
        return self.output_dir / "lib"

    @property
    def include_dir(self) -> Path:
        return self.output_dir / "include"

    @property
    def obj_dir(self) -> Path:
        return self.output_dir / "obj"

    @property
    def tests_dir(self) -> Path:
        return self.output_dir / "tests"


class BuildPlan(FrozenModelWithDocstrings):
    """Resolved, immutable description of what to compile and how.

    Created by the configuration resolver from :class:`BuildOptions`. ``modules`` is closed
    under dependencies and ordered so that every module appears after its dependencies.
    """

    package: PackageInfo
    """Package identity."""
    modules: Tuple[Module, ...]
    """Modules to compile, in compilation (topological) order."""
    configurations: Tuple[BuildConfiguration, ...] = Field(min_length=1)
    """Configurations to build."""
    shared_libs: bool = False
    """Build shared libraries instead of static archives."""
    runtime_linkage_dynamic: bool = False
    """Link the compiler runtime dynamically."""
    tests_enabled: bool = False
    """Compile the per-module test programs."""
    install_prefix: Path
    """Installation prefix."""
    source_dir: Path
    """Absolute source root."""
    build_dir: Path
    """Absolute build tree root."""
    jobs: int = Field(default=1, ge=1)
    """Size of the compilation worker pool."""
    excluded: Tuple[str, ...] = ()
    """Modules removed from the plan by binding exclusion, including their dependents."""

    @property
    def library_kind(self) -> LibraryKind:
        return LibraryKind.SHARED if self.shared_libs else LibraryKind.STATIC

    def module_names(self) -> List[str]:
        """Names of the planned modules in compilation order."""
        return [m.name for m in self.modules]

    def module_map(self) -> Dict[str, Module]:
        """Mapping from module name to module for the planned modules."""
        return {m.name: m for m in self.modules}

    def get_configuration(self, name: str) -> BuildConfiguration:
        """Look up a planned configuration by name.

        Raises
        ------
        UnknownConfiguration
            If the configuration is not part of the plan.
        """
        for cfg in self.configurations:
            if cfg.name == name:
                return cfg
        raise UnknownConfiguration(getattr(name, "value", name))
