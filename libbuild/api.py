"""High-level configure / build / install / test workflow.

Each stage persists its result in the build tree, so the stages can be run in separate
invocations (as the command line interface does):

- ``<build>/plan.json``: the resolved :class:`BuildPlan`
- ``<build>/compilation.json``: the :class:`CompilationReport`
- ``<build>/Testing/last_run.json``: the last :class:`TestRunResult`
- ``<build>/Testing/logs/<test>.log``: captured output of every executed test
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

from libbuild.compile import CompilationDriver, Toolchain
from libbuild.configure import resolve_options
from libbuild.data import (
    Artifact,
    BuildOptions,
    BuildPlan,
    CompilationReport,
    InstallManifest,
    PackageInfo,
    TestRunResult,
    load_json_file,
    save_json_file,
)
from libbuild.install import Installer
from libbuild.logging import get_logger
from libbuild.modules import ModuleRegistry
from libbuild.testing import DEFAULT_TEST_TIMEOUT, TestOrchestrator, discover_tests

logger = get_logger("api")

PLAN_FILE = "plan.json"
REPORT_FILE = "compilation.json"
TESTING_DIR = "Testing"
LAST_RUN_FILE = f"{TESTING_DIR}/last_run.json"
TEST_LOG_DIR = f"{TESTING_DIR}/logs"


def configure(
    options: BuildOptions, registry: Optional[ModuleRegistry] = None, save: bool = True
) -> BuildPlan:
    """Resolve options into a build plan.

    Parameters
    ----------
    options : BuildOptions
        The build options.
    registry : Optional[ModuleRegistry]
        The module catalog. Defaults to the ``libbuild.json`` of ``options.source_dir``.
    save : bool
        Write the plan to ``<build>/plan.json``.
    """
    plan = resolve_options(options, registry)
    if save:
        save_json_file(plan, plan.build_dir / PLAN_FILE)
    return plan


def build(
    plan: BuildPlan,
    configuration: Optional[str] = None,
    toolchain: Optional[Toolchain] = None,
    save: bool = True,
) -> CompilationReport:
    """Compile the plan, for one configuration or for all of them.

    Parameters
    ----------
    plan : BuildPlan
        The plan to compile.
    configuration : Optional[str]
        Name of a single configuration to build. Defaults to all configurations of the plan.
    toolchain : Optional[Toolchain]
        Toolchain to compile with. Defaults to the system C toolchain.
    save : bool
        Write the report to ``<build>/compilation.json``.
    """
    driver = CompilationDriver(toolchain)
    if configuration is None:
        report = driver.compile(plan)
    else:
        report = driver.build(plan, configuration)
    if save:
        save_json_file(report, plan.build_dir / REPORT_FILE)
    return report


def install(
    report_or_artifacts: Union[CompilationReport, Sequence[Artifact]],
    prefix: Path,
    package: PackageInfo,
) -> InstallManifest:
    """Install the artifacts of a compilation below ``prefix``.

    Only artifacts that were produced are installed; modules that failed or were skipped
    are left out.
    """
    if isinstance(report_or_artifacts, CompilationReport):
        report = report_or_artifacts
        if not report.success:
            logger.warning(
                "Installing a partial build: %d module(s) failed, %d skipped",
                len(report.failures),
                len(report.skipped),
            )
        artifacts = report.artifacts
    else:
        artifacts = list(report_or_artifacts)
    return Installer(package).install(artifacts, prefix)


def test(
    report: CompilationReport,
    plan: BuildPlan,
    pattern: Optional[str] = None,
    concurrency: int = 1,
    timeout: Optional[float] = None,
    save: bool = True,
) -> TestRunResult:
    """Discover and run the tests of a compilation.

    Parameters
    ----------
    report : CompilationReport
        The compilation whose test executables are run.
    plan : BuildPlan
        The plan the report was produced from.
    pattern : Optional[str]
        Regular expression selecting tests by name.
    concurrency : int
        Maximum number of tests running at the same time.
    timeout : Optional[float]
        Per-test timeout in seconds. Defaults to 1500.
    save : bool
        Write the result to ``<build>/Testing/last_run.json``.
    """
    cases = discover_tests(report, plan, pattern=pattern)
    orchestrator = _make_orchestrator(plan.build_dir, concurrency)
    result = orchestrator.run(cases, timeout=timeout)
    if save:
        save_json_file(result, plan.build_dir / LAST_RUN_FILE)
    return result


def rerun_failed(
    result: TestRunResult,
    build_dir: Optional[Path] = None,
    concurrency: int = 1,
    timeout: Optional[float] = None,
    report: Optional[CompilationReport] = None,
    plan: Optional[BuildPlan] = None,
) -> TestRunResult:
    """Re-run the tests of ``result`` that failed or timed out.

    ``result`` is not modified. When ``build_dir`` is given, logs go to
    ``<build>/Testing/logs`` and the new result replaces ``last_run.json`` if anything ran.
    When the current ``report`` and its ``plan`` are given, tests that were skipped in
    ``result`` and now have a test program are run as well.
    """
    available = discover_tests(report, plan) if report is not None and plan is not None else []
    orchestrator = _make_orchestrator(build_dir, concurrency)
    rerun = orchestrator.rerun_failed(result, timeout=timeout, available=available)
    if build_dir is not None and rerun.total:
        save_json_file(rerun, Path(build_dir) / LAST_RUN_FILE)
    return rerun


def load_plan(build_dir: Path) -> BuildPlan:
    """Load the plan saved by :func:`configure`."""
    return load_json_file(BuildPlan, Path(build_dir) / PLAN_FILE)


def load_report(build_dir: Path) -> CompilationReport:
    """Load the report saved by :func:`build`."""
    return load_json_file(CompilationReport, Path(build_dir) / REPORT_FILE)


def load_last_run(build_dir: Path) -> TestRunResult:
    """Load the result saved by the last :func:`test` or :func:`rerun_failed`."""
    return load_json_file(TestRunResult, Path(build_dir) / LAST_RUN_FILE)


def _make_orchestrator(build_dir: Optional[Path], concurrency: int) -> TestOrchestrator:
    log_dir = Path(build_dir) / TEST_LOG_DIR if build_dir is not None else None
    return TestOrchestrator(
        concurrency=concurrency, default_timeout=DEFAULT_TEST_TIMEOUT, log_dir=log_dir
    )
