"""Data layer with strongly-typed pydantic models for libbuild."""

from .artifact import (
    Artifact,
    CompilationFailure,
    CompilationReport,
    HeaderFile,
    InstallManifest,
    SkippedModule,
)
from .build import (
    BuildConfiguration,
    BuildOptions,
    BuildPlan,
    ConfigurationName,
    LibraryKind,
)
from .json_utils import load_json_file, save_json_file
from .module import Module, PackageInfo, ProjectFile
from .test_run import TestCase, TestOutcome, TestRunResult, TestStatus

__all__ = [
    # Module types
    "Module",
    "PackageInfo",
    "ProjectFile",
    # Build types
    "BuildConfiguration",
    "BuildOptions",
    "BuildPlan",
    "ConfigurationName",
    "LibraryKind",
    # Compilation and install types
    "Artifact",
    "CompilationFailure",
    "CompilationReport",
    "HeaderFile",
    "InstallManifest",
    "SkippedModule",
    # Test types
    "TestCase",
    "TestOutcome",
    "TestRunResult",
    "TestStatus",
    # JSON functions
    "save_json_file",
    "load_json_file",
]
