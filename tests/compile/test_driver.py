import sys
from pathlib import Path

import pytest

from libbuild.compile import CompilationDriver, library_file_name, shared_library_suffix
from libbuild.configure import ConfigurationResolver
from libbuild.data import BuildOptions, BuildPlan, ConfigurationName, LibraryKind
from libbuild.modules import ModuleRegistry


@pytest.fixture(autouse=True)
def _use_tmp_build_path(tmp_build_path: Path) -> None:
    """Automatically use tmp_build_path for all tests in this module."""


def _plan(registry: ModuleRegistry, project_dir: Path, **kwargs) -> BuildPlan:
    options = BuildOptions(
        install_prefix=project_dir.parent / "prefix", source_dir=project_dir, **kwargs
    )
    return ConfigurationResolver(registry).resolve(options)


def test_static_build(registry, project_dir, fake_toolchain):
    plan = _plan(registry, project_dir)
    report = CompilationDriver(fake_toolchain).compile(plan)

    assert report.success
    assert report.order == {"Release": ["core", "linalg", "ode", "glue"]}
    assert sorted(a.module for a in report.artifacts) == ["core", "glue", "linalg", "ode"]

    release = plan.get_configuration("Release")
    linalg = report.get_artifact("linalg", "Release")
    assert linalg.kind == LibraryKind.STATIC
    assert linalg.library == release.lib_dir / "libmini_linalg.a"
    assert linalg.library.exists()
    assert linalg.link_name == "mini_linalg"
    assert linalg.tests == ()
    assert [h.relative_path for h in linalg.headers] == ["linalg/lu.h"]
    assert (release.include_dir / "linalg" / "lu.h").read_text().startswith("#ifndef")

    compiles = fake_toolchain.calls_of("compile")
    assert all(c["flags"] == ["-O2", "-DNDEBUG"] for c in compiles)
    assert all(c["include_dirs"] == [release.include_dir] for c in compiles)
    assert not any(c["position_independent"] for c in compiles)
    assert len(fake_toolchain.calls_of("archive")) == 4
    assert fake_toolchain.calls_of("link_shared") == []


def test_dependencies_compile_first(registry, project_dir, fake_toolchain):
    plan = _plan(registry, project_dir, jobs=8)
    CompilationDriver(fake_toolchain).compile(plan)

    calls = fake_toolchain.calls
    first_compile = {}
    archived = {}
    for i, call in enumerate(calls):
        module = call["output"].parent.name if call["op"] == "compile" else None
        if module is not None:
            first_compile.setdefault(module, i)
        if call["op"] == "archive":
            archived[call["output"].name] = i
    for module in plan.modules:
        for dep in module.dependencies:
            dep_lib = library_file_name(plan.package, dep, LibraryKind.STATIC)
            assert archived[dep_lib] < first_compile[module.name]


def test_failure_skips_dependents(registry, project_dir, fake_toolchain):
    fake_toolchain.fail_sources.add("lu.c")
    plan = _plan(registry, project_dir, multi_config=True, configurations=["Debug", "Release"])
    report = CompilationDriver(fake_toolchain).compile(plan)

    assert not report.success
    assert sorted((f.module, f.configuration.value) for f in report.failures) == [
        ("linalg", "Debug"),
        ("linalg", "Release"),
    ]
    assert "expected ';'" in report.failures[0].diagnostic
    assert report.failures[0].command[0] == "fake-cc"
    skipped = sorted((s.module, s.configuration.value) for s in report.skipped)
    assert skipped == [("glue", "Debug"), ("glue", "Release"), ("ode", "Debug"), ("ode", "Release")]
    ode = next(s for s in report.skipped if s.module == "ode")
    assert "linalg" in ode.reason
    # Independent modules are still built in every configuration
    assert sorted((a.module, a.configuration.value) for a in report.artifacts) == [
        ("core", "Debug"),
        ("core", "Release"),
    ]
    assert report.order["Debug"] == ["core", "linalg"]


def test_missing_header_is_a_compilation_failure(registry, project_dir, fake_toolchain):
    (project_dir / "core" / "core.h").unlink()
    report = CompilationDriver(fake_toolchain).compile(_plan(registry, project_dir))
    assert [f.module for f in report.failures] == ["core"]
    assert "core.h" in report.failures[0].diagnostic
    assert {s.module for s in report.skipped} == {"linalg", "ode", "glue"}
    assert report.artifacts == []


def test_tests_are_linked_in_dependency_order(registry, project_dir, fake_toolchain):
    plan = _plan(registry, project_dir, tests_enabled=True, modules=["ode"])
    report = CompilationDriver(fake_toolchain).compile(plan)
    release = plan.get_configuration("Release")

    ode = report.get_artifact("ode", "Release")
    assert ode.tests == (release.tests_dir / "ode" / "test_rk",)
    links = {c["output"].name: c for c in fake_toolchain.calls_of("link_executable")}
    assert set(links) == {"test_core", "test_lu", "test_rk"}
    assert links["test_rk"]["libraries"] == ["mini_ode", "mini_linalg", "mini_core", "m"]
    assert links["test_lu"]["libraries"] == ["mini_linalg", "mini_core", "m"]
    assert links["test_core"]["libraries"] == ["mini_core"]
    assert links["test_rk"]["flags"] == ["-static-libgcc"]


def test_shared_build(registry, project_dir, fake_toolchain):
    plan = _plan(
        registry, project_dir, shared_libs=True, runtime_linkage_dynamic=True, tests_enabled=True
    )
    report = CompilationDriver(fake_toolchain).compile(plan)
    assert report.success

    linalg = report.get_artifact("linalg", "Release")
    assert linalg.kind == LibraryKind.SHARED
    assert linalg.library.name == "libmini_linalg" + shared_library_suffix()
    assert fake_toolchain.calls_of("archive") == []
    shared = {c["output"].name: c for c in fake_toolchain.calls_of("link_shared")}
    assert shared[linalg.library.name]["libraries"] == ["mini_core", "m"]
    assert shared[linalg.library.name]["flags"] == []

    for call in fake_toolchain.calls_of("compile"):
        is_test = call["source"].name.startswith("test_")
        assert call["position_independent"] is not is_test


def test_build_single_configuration(registry, project_dir, fake_toolchain):
    plan = _plan(registry, project_dir, multi_config=True, configurations=["Debug", "Release"])
    report = CompilationDriver(fake_toolchain).build(plan, "Debug")
    assert {a.configuration for a in report.artifacts} == {ConfigurationName.DEBUG}
    assert list(report.order) == ["Debug"]
    with pytest.raises(KeyError):
        CompilationDriver(fake_toolchain).build(plan, "MinSizeRel")


def test_driver_rejects_bad_jobs(fake_toolchain):
    with pytest.raises(ValueError):
        CompilationDriver(fake_toolchain, jobs=0)


if __name__ == "__main__":
    pytest.main(sys.argv)
