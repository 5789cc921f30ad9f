"""Strong-typed data definitions for compilation outputs and install records."""

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import Field

from .build import ConfigurationName, LibraryKind
from .utils import BaseModelWithDocstrings, FrozenModelWithDocstrings, NonEmptyString


class HeaderFile(FrozenModelWithDocstrings):
    """A public header of a module."""

    source: Path
    """Absolute path of the header in the source tree."""
    relative_path: NonEmptyString
    """Path of the header below ``include/`` once staged or installed."""


class Artifact(FrozenModelWithDocstrings):
    """Output of compiling one module under one configuration.

    Owned by the compilation driver until it is handed to the installer.
    """

    module: NonEmptyString
    """Name of the compiled module."""
    configuration: ConfigurationName
    """Configuration the module was compiled with."""
    library: Path
    """Path of the produced archive or shared object in the build tree."""
    kind: LibraryKind
    """Static archive or shared object."""
    link_name: NonEmptyString
    """Library name passed to the linker with ``-l`` (``<package>_<module>``)."""
    headers: Tuple[HeaderFile, ...] = ()
    """Public headers of the module."""
    dependencies: Tuple[str, ...] = ()
    """Direct module dependencies."""
    system_libraries: Tuple[str, ...] = ()
    """System libraries the module links against."""
    tests: Tuple[Path, ...] = ()
    """Test executables built for this module (empty when tests are disabled)."""


class CompilationFailure(BaseModelWithDocstrings):
    """A module that failed to compile under one configuration."""

    module: NonEmptyString
    """Name of the failed module."""
    configuration: ConfigurationName
    """Configuration the failure happened in."""
    diagnostic: str = ""
    """Raw toolchain diagnostic output."""
    command: List[str] = Field(default_factory=list)
    """The failing toolchain command, if any."""


class SkippedModule(BaseModelWithDocstrings):
    """A module that was not compiled because one of its dependencies failed."""

    module: NonEmptyString
    """Name of the skipped module."""
    configuration: ConfigurationName
    """Configuration the module was skipped in."""
    reason: str
    """Why the module was skipped."""


class CompilationReport(BaseModelWithDocstrings):
    """Aggregate result of compiling a build plan.

    The report always covers the whole plan: failed modules, skipped dependents and produced
    artifacts are all recorded, regardless of how many failures occurred.
    """

    artifacts: List[Artifact] = Field(default_factory=list)
    """Artifacts of the successfully compiled modules."""
    failures: List[CompilationFailure] = Field(default_factory=list)
    """Modules that failed to compile."""
    skipped: List[SkippedModule] = Field(default_factory=list)
    """Modules skipped because a dependency failed."""
    order: Dict[str, List[str]] = Field(default_factory=dict)
    """Per configuration, the order in which modules were dispatched for compilation."""
    elapsed_seconds: float = Field(default=0.0, ge=0.0)
    """Wall-clock duration of the compilation."""

    @property
    def success(self) -> bool:
        return not self.failures and not self.skipped

    def get_artifact(self, module: str, configuration: str) -> Optional[Artifact]:
        """Return the artifact of a module under a configuration, or None if absent."""
        for artifact in self.artifacts:
            if artifact.module == module and artifact.configuration == configuration:
                return artifact
        return None

    def summary(self) -> str:
        """Human-readable summary of the compilation."""
        lines = [
            f"Compiled {len(self.artifacts)} module(s), {len(self.failures)} failed, "
            f"{len(self.skipped)} skipped in {self.elapsed_seconds:.2f}s"
        ]
        for f in sorted(self.failures, key=lambda f: (f.configuration.value, f.module)):
            lines.append(f"  FAILED  {f.module} [{f.configuration.value}]")
        for s in sorted(self.skipped, key=lambda s: (s.configuration.value, s.module)):
            lines.append(f"  SKIPPED {s.module} [{s.configuration.value}]: {s.reason}")
        return "\n".join(lines)


class InstallManifest(BaseModelWithDocstrings):
    """Record of installed file locations produced by the installer."""

    prefix: Path
    """Installation prefix."""
    package: NonEmptyString
    """Installed package name."""
    version: NonEmptyString
    """Installed package version."""
    files: List[str] = Field(default_factory=list)
    """Installed files relative to the prefix, sorted, POSIX separators."""
    targets: List[str] = Field(default_factory=list)
    """Installed linkable targets (``<package>::<module>``), sorted."""
