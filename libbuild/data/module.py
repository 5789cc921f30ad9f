"""Strong-typed data definitions for library modules and their catalog."""

from pathlib import PurePosixPath
from typing import List, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from .utils import (
    BaseModelWithDocstrings,
    FrozenModelWithDocstrings,
    Identifier,
    NonEmptyString,
    validate_relative_path,
)


class PackageInfo(FrozenModelWithDocstrings):
    """Identity of the library package being built and installed."""

    name: Identifier
    """Package name. Used for the CMake package directory, the pkg-config file name, the
    imported target namespace (``<name>::<module>``) and the library file prefix."""
    version: NonEmptyString = "0.0.0"
    """Package version written into the generated descriptors."""
    description: Optional[str] = None
    """Optional one-line description for the pkg-config descriptor."""


class Module(FrozenModelWithDocstrings):
    """A named, independently buildable unit of the target library.

    All paths are relative to the source directory of the project. A module compiles its
    ``sources`` into one library, publishes its ``headers`` and may declare per-module test
    programs in ``tests``.
    """

    name: Identifier
    """Unique module name (e.g. 'linalg', 'specfunc', 'ode')."""
    sources: Tuple[NonEmptyString, ...] = Field(min_length=1)
    """Ordered list of source units compiled into the module library."""
    headers: Tuple[NonEmptyString, ...] = ()
    """Public headers. Each header is installed as ``include/<path>``."""
    dependencies: Tuple[Identifier, ...] = ()
    """Names of the modules this module depends on."""
    tests: Tuple[NonEmptyString, ...] = ()
    """Sources of the module's test programs, one executable per source."""
    system_libraries: Tuple[NonEmptyString, ...] = ()
    """Extra system libraries to link against (e.g. 'm')."""
    optional_binding: bool = False
    """Whether this module is an optional binding that can be excluded at configure time."""
    description: Optional[str] = None
    """Optional human-readable description."""

    @field_validator("sources", "headers", "tests")
    @classmethod
    def _validate_paths(cls, paths: Tuple[str, ...]) -> Tuple[str, ...]:
        seen = set()
        for path in paths:
            validate_relative_path(path)
            if path in seen:
                raise ValueError(f"Duplicate path '{path}'")
            seen.add(path)
        return paths

    @field_validator("tests")
    @classmethod
    def _validate_test_names(cls, tests: Tuple[str, ...]) -> Tuple[str, ...]:
        # The executable and the test name are derived from the file stem
        stems = {}
        for path in tests:
            stem = PurePosixPath(path).stem
            if stem in stems:
                raise ValueError(
                    f"Test programs '{stems[stem]}' and '{path}' would both build "
                    f"the executable '{stem}'"
                )
            stems[stem] = path
        return tests

    @field_validator("dependencies")
    @classmethod
    def _dedup_dependencies(cls, deps: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(deps))


class ProjectFile(BaseModelWithDocstrings):
    """On-disk module catalog of a project (``libbuild.json``)."""

    package: PackageInfo
    """Package identity."""
    modules: List[Module] = Field(default_factory=list)
    """All modules of the library."""

    @model_validator(mode="after")
    def _validate_unique_names(self) -> "ProjectFile":
        seen = set()
        for module in self.modules:
            if module.name in seen:
                raise ValueError(f"Duplicate module name '{module.name}'")
            seen.add(module.name)
        return self
