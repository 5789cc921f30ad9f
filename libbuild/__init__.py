from libbuild.api import build, configure, install, rerun_failed
from libbuild.compile import CompilationDriver, CompilationError, Toolchain, UnixToolchain
from libbuild.configure import ConfigurationError, ConfigurationResolver, UnwritablePrefix
from libbuild.data import (
    Artifact,
    BuildConfiguration,
    BuildOptions,
    BuildPlan,
    CompilationReport,
    ConfigurationName,
    InstallManifest,
    LibraryKind,
    Module,
    PackageInfo,
    TestCase,
    TestOutcome,
    TestRunResult,
    TestStatus,
)
from libbuild.errors import LibBuildError, TestFailure, TestTimeout, UnknownConfiguration
from libbuild.install import Installer, InstallIOError
from libbuild.logging import configure_logging, get_logger
from libbuild.modules import CyclicDependency, ModuleRegistry, UnknownModule
from libbuild.testing import TestOrchestrator, discover_tests

__all__ = [
    # Workflow API
    "configure",
    "build",
    "install",
    "rerun_failed",
    # Main classes
    "ModuleRegistry",
    "ConfigurationResolver",
    "CompilationDriver",
    "Toolchain",
    "UnixToolchain",
    "Installer",
    "TestOrchestrator",
    "discover_tests",
    # Module and build types
    "Module",
    "PackageInfo",
    "BuildOptions",
    "BuildPlan",
    "BuildConfiguration",
    "ConfigurationName",
    "LibraryKind",
    # Output types
    "Artifact",
    "CompilationReport",
    "InstallManifest",
    "TestCase",
    "TestOutcome",
    "TestRunResult",
    "TestStatus",
    # Errors
    "LibBuildError",
    "UnknownModule",
    "CyclicDependency",
    "ConfigurationError",
    "UnwritablePrefix",
    "UnknownConfiguration",
    "CompilationError",
    "InstallIOError",
    "TestFailure",
    "TestTimeout",
    "configure_logging",
    "get_logger",
]
