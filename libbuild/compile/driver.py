"""Dependency-ordered, concurrent compilation of a build plan."""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from libbuild.data import (
    Artifact,
    BuildConfiguration,
    BuildPlan,
    CompilationFailure,
    CompilationReport,
    LibraryKind,
    Module,
    SkippedModule,
)
from libbuild.errors import LibBuildError
from libbuild.logging import get_logger
from libbuild.modules import dependency_closure, topological_levels

from .toolchain import Toolchain, ToolchainError, UnixToolchain
from .utils import (
    library_file_name,
    link_name,
    module_headers,
    object_file_name,
    program_name,
    stage_headers,
)

logger = get_logger("CompilationDriver")


class CompilationError(LibBuildError):
    """A module failed to compile under one configuration."""

    def __init__(
        self,
        module: str,
        configuration: str,
        diagnostic: str,
        command: Optional[Sequence[str]] = None,
    ) -> None:
        self.module = module
        self.configuration = configuration
        self.diagnostic = diagnostic
        self.command = list(command or [])
        super().__init__(f"Compilation of module '{module}' [{configuration}] failed")

    def to_failure(self) -> CompilationFailure:
        return CompilationFailure(
            module=self.module,
            configuration=self.configuration,
            diagnostic=self.diagnostic,
            command=self.command,
        )


class CompilationDriver:
    """Compiles the modules of a build plan into artifacts.

    For every configuration the plan's modules are split into dependency levels. The modules
    of one level do not depend on each other and are compiled concurrently on a bounded
    worker pool; a level starts only after the previous one has finished, so a module never
    compiles before the headers and libraries of its dependencies exist.

    A failing module does not stop the build: its dependents in the same configuration are
    skipped, and every other module and configuration is still compiled. The returned
    :class:`CompilationReport` covers the whole plan.
    """

    def __init__(self, toolchain: Optional[Toolchain] = None, jobs: Optional[int] = None):
        """Initialize the driver.

        Parameters
        ----------
        toolchain : Optional[Toolchain]
            Toolchain running the compiler, archiver and linker. Defaults to
            :class:`UnixToolchain`.
        jobs : Optional[int]
            Worker pool size. Defaults to the plan's ``jobs``.
        """
        if jobs is not None and jobs < 1:
            raise ValueError("jobs must be >= 1")
        self._toolchain = toolchain or UnixToolchain()
        self._jobs = jobs

    def build(self, plan: BuildPlan, configuration: str) -> CompilationReport:
        """Compile the plan for a single configuration.

        Raises
        ------
        UnknownConfiguration
            If the configuration is not part of the plan.
        """
        return self.compile(plan, [configuration])

    def compile(
        self, plan: BuildPlan, configurations: Optional[Iterable[str]] = None
    ) -> CompilationReport:
        """Compile the plan.

        Parameters
        ----------
        plan : BuildPlan
            The plan to compile.
        configurations : Optional[Iterable[str]]
            Names of the configurations to build. Defaults to every configuration of the plan.

        Returns
        -------
        CompilationReport
            Artifacts, failures, skipped modules and the per-configuration dispatch order.
        """
        if configurations is None:
            selected = list(plan.configurations)
        else:
            selected = [plan.get_configuration(name) for name in configurations]

        report = CompilationReport()
        start = time.perf_counter()
        with ThreadPoolExecutor(max_workers=self._jobs or plan.jobs) as pool:
            for cfg in selected:
                self._compile_configuration(plan, cfg, pool, report)
        report.elapsed_seconds = time.perf_counter() - start

        logger.info(
            "Compilation finished: %d artifact(s), %d failure(s), %d skipped",
            len(report.artifacts),
            len(report.failures),
            len(report.skipped),
        )
        return report

    def _compile_configuration(
        self,
        plan: BuildPlan,
        cfg: BuildConfiguration,
        pool: ThreadPoolExecutor,
        report: CompilationReport,
    ) -> None:
        modules = plan.module_map()
        broken: Dict[str, str] = {}
        order: List[str] = []
        report.order[cfg.name.value] = order

        for level in topological_levels(modules, modules):
            futures: Dict[str, Future] = {}
            for name in level:
                blocked = [d for d in modules[name].dependencies if d in broken]
                if blocked:
                    reason = f"dependency '{blocked[0]}' {broken[blocked[0]]}"
                    broken[name] = "was skipped"
                    report.skipped.append(
                        SkippedModule(module=name, configuration=cfg.name, reason=reason)
                    )
                    logger.warning("[%s] Skipping %s: %s", cfg.name.value, name, reason)
                    continue
                order.append(name)
                futures[name] = pool.submit(self._compile_module, plan, cfg, modules[name])

            for name, fut in futures.items():
                try:
                    report.artifacts.append(fut.result())
                except CompilationError as e:
                    broken[name] = "failed to compile"
                    report.failures.append(e.to_failure())
                    logger.error("[%s] %s\n%s", cfg.name.value, e, e.diagnostic.rstrip())

    def _compile_module(
        self, plan: BuildPlan, cfg: BuildConfiguration, module: Module
    ) -> Artifact:
        """Compile one module (and its tests) under one configuration.

        Raises
        ------
        CompilationError
            If any toolchain step or file operation fails.
        """
        logger.info("[%s] Compiling %s", cfg.name.value, module.name)
        try:
            return self._compile_module_unchecked(plan, cfg, module)
        except ToolchainError as e:
            raise CompilationError(module.name, cfg.name.value, e.diagnostic, e.command) from e
        except OSError as e:
            raise CompilationError(module.name, cfg.name.value, str(e)) from e

    def _compile_module_unchecked(
        self, plan: BuildPlan, cfg: BuildConfiguration, module: Module
    ) -> Artifact:
        modules = plan.module_map()
        kind = plan.library_kind
        shared = kind == LibraryKind.SHARED

        headers = module_headers(module, plan.source_dir)
        stage_headers(headers, cfg.include_dir)

        obj_dir = cfg.obj_dir / module.name
        objects = self._compile_sources(
            plan.source_dir, module.sources, obj_dir, cfg, position_independent=shared
        )

        library = cfg.lib_dir / library_file_name(plan.package, module.name, kind)
        deps = _link_order(plan, module.name)
        system_libs = _system_libraries(modules, [module.name, *deps])
        if shared:
            self._toolchain.link_shared(
                objects,
                library,
                [cfg.lib_dir],
                [link_name(plan.package, d) for d in deps] + system_libs,
                cfg.link_flags,
            )
        else:
            self._toolchain.archive(objects, library)

        tests: List[Path] = []
        if plan.tests_enabled:
            libraries = [link_name(plan.package, n) for n in (module.name, *deps)] + system_libs
            for test_source in module.tests:
                test_obj = self._compile_sources(
                    plan.source_dir, [test_source], obj_dir / "tests", cfg
                )
                exe = cfg.tests_dir / module.name / program_name(test_source)
                self._toolchain.link_executable(
                    test_obj, exe, [cfg.lib_dir], libraries, cfg.link_flags
                )
                tests.append(exe)

        return Artifact(
            module=module.name,
            configuration=cfg.name,
            library=library,
            kind=kind,
            link_name=link_name(plan.package, module.name),
            headers=tuple(headers),
            dependencies=module.dependencies,
            system_libraries=tuple(system_libs),
            tests=tuple(tests),
        )

    def _compile_sources(
        self,
        source_dir: Path,
        sources: Sequence[str],
        obj_dir: Path,
        cfg: BuildConfiguration,
        position_independent: bool = False,
    ) -> List[Path]:
        objects = []
        for source in sources:
            obj = obj_dir / object_file_name(source)
            self._toolchain.compile_object(
                source_dir / source,
                obj,
                [cfg.include_dir],
                cfg.compile_flags,
                position_independent=position_independent,
            )
            objects.append(obj)
        return objects


def _link_order(plan: BuildPlan, name: str) -> List[str]:
    """Transitive dependencies of ``name``, dependents before their dependencies."""
    modules = plan.module_map()
    closure = dependency_closure(modules, modules[name].dependencies)
    return [n for n in reversed(plan.module_names()) if n in closure]


def _system_libraries(modules: Dict[str, Module], names: Iterable[str]) -> List[str]:
    libs: Dict[str, None] = {}
    for name in names:
        for lib in modules[name].system_libraries:
            libs[lib] = None
    return list(libs)
