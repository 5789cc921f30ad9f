import json
import sys
from pathlib import Path

import pytest

from libbuild import api
from libbuild.cli.main import EXIT_CONFIGURATION_ERROR, EXIT_FAILURE, EXIT_OK, main
from libbuild.data import BuildOptions, TestRunResult, TestStatus
from libbuild.testing import TestOrchestrator, discover_tests


@pytest.fixture(autouse=True)
def _use_tmp_build_path(tmp_build_path: Path) -> None:
    """Automatically use tmp_build_path for all tests in this module."""


@pytest.fixture
def use_fake_toolchain(monkeypatch: pytest.MonkeyPatch, fake_toolchain):
    """Make the command line build with the fake toolchain."""
    monkeypatch.setattr("libbuild.compile.driver.UnixToolchain", lambda: fake_toolchain)
    return fake_toolchain


def test_api_state_round_trip(registry, project_dir, fake_toolchain, tmp_path, tmp_build_path):
    options = BuildOptions(install_prefix=tmp_path / "prefix", source_dir=project_dir)
    plan = api.configure(options, registry)
    assert api.load_plan(tmp_build_path) == plan

    report = api.build(plan, toolchain=fake_toolchain)
    assert api.load_report(tmp_build_path) == report

    manifest = api.install(report, plan.install_prefix, plan.package)
    assert "lib/pkgconfig/mini.pc" in manifest.files


def test_api_rerun_failed_keeps_last_run_without_failures(tmp_build_path):
    empty = api.rerun_failed(TestRunResult(), build_dir=tmp_build_path)
    assert empty.total == 0
    assert not (tmp_build_path / api.LAST_RUN_FILE).exists()


def test_api_rerun_failed_runs_tests_of_rebuilt_modules(
    registry, project_dir, fake_toolchain, tmp_path, tmp_build_path
):
    options = BuildOptions(
        install_prefix=tmp_path / "prefix", source_dir=project_dir, tests_enabled=True
    )
    plan = api.configure(options, registry)
    fake_toolchain.fail_sources.add("lu.c")
    broken = api.build(plan, toolchain=fake_toolchain)
    previous = TestOrchestrator().run(
        [c for c in discover_tests(broken, plan) if c.skip_reason is not None]
    )
    assert previous.skipped == 2

    # Nothing failed and nothing was rebuilt yet
    assert api.rerun_failed(previous, report=broken, plan=plan).total == 0

    fake_toolchain.fail_sources.clear()
    fixed = api.build(plan, toolchain=fake_toolchain)
    rerun = api.rerun_failed(previous, build_dir=tmp_build_path, report=fixed, plan=plan)
    assert [o.case.name for o in rerun.outcomes] == [
        "linalg.test_lu[Release]",
        "ode.test_rk[Release]",
    ]
    assert api.load_last_run(tmp_build_path) == rerun


def test_modules_command(project_dir, capsys):
    assert main(["modules", "--source-dir", str(project_dir)]) == EXIT_OK
    out = capsys.readouterr().out
    assert "mini 1.2.0: 4 module(s)" in out
    assert "- glue (optional binding): depends on ode" in out
    assert "- core: depends on -" in out


def test_configure_errors(project_dir, tmp_path, capsys):
    base = ["configure", "--prefix", str(tmp_path / "prefix"), "--source-dir", str(project_dir)]
    assert main(base + ["--module", "fft"]) == EXIT_CONFIGURATION_ERROR
    assert "Unknown module 'fft'" in capsys.readouterr().err

    assert main(base + ["--config", "Debug", "--config", "Release"]) == EXIT_CONFIGURATION_ERROR
    assert "multi-config is disabled" in capsys.readouterr().err

    assert main(base + ["--exclude", "linalg"]) == EXIT_CONFIGURATION_ERROR

    with pytest.raises(SystemExit) as exc_info:
        main(base + ["--config", "Fast"])
    assert exc_info.value.code == 2


def test_build_without_configure(tmp_path, capsys):
    assert main(["build", "--build-dir", str(tmp_path / "nowhere")]) == EXIT_FAILURE
    assert "plan.json" in capsys.readouterr().err


def test_failed_build_exit_code(project_dir, tmp_path, use_fake_toolchain, capsys):
    use_fake_toolchain.fail_sources.add("rk.c")
    prefix = tmp_path / "prefix"
    assert (
        main(["configure", "--prefix", str(prefix), "--source-dir", str(project_dir)]) == EXIT_OK
    )
    assert main(["build"]) == EXIT_FAILURE
    out = capsys.readouterr().out
    assert "FAILED  ode [Release]" in out
    assert "SKIPPED glue [Release]" in out

    # The modules that did build are still installed, but the stage reports the failure
    assert main(["install"]) == EXIT_FAILURE
    assert (prefix / "lib" / "Release" / "libmini_linalg.a").exists()
    assert not (prefix / "lib" / "Release" / "libmini_ode.a").exists()


def test_build_configuration_not_in_plan(project_dir, tmp_path, use_fake_toolchain, capsys):
    prefix = tmp_path / "prefix"
    assert (
        main(["configure", "--prefix", str(prefix), "--source-dir", str(project_dir)]) == EXIT_OK
    )
    assert main(["build", "--config", "Debug"]) == EXIT_CONFIGURATION_ERROR
    assert "Configuration 'Debug' is not part of the build plan" in capsys.readouterr().err
    assert use_fake_toolchain.calls == []


def test_invalid_test_pattern(project_dir, tmp_path, use_fake_toolchain, capsys):
    configure = ["configure", "--prefix", str(tmp_path / "prefix")]
    assert main(configure + ["--source-dir", str(project_dir), "--tests"]) == EXIT_OK
    assert main(["build"]) == EXIT_OK
    capsys.readouterr()

    assert main(["test", "-R", "["]) == EXIT_FAILURE
    assert "Invalid test name pattern '['" in capsys.readouterr().err


@pytest.mark.requires_cc
def test_full_workflow(project_dir, tmp_path, tmp_build_path, capsys):
    prefix = tmp_path / "prefix"
    configure = [
        "configure",
        "--prefix",
        str(prefix),
        "--source-dir",
        str(project_dir),
        "--tests",
        "--dynamic-runtime",
        "--multi-config",
        "--config",
        "Debug",
        "--config",
        "Release",
        "--exclude",
        "glue",
    ]
    assert main(configure) == EXIT_OK
    assert main(["build"]) == EXIT_OK
    assert main(["install"]) == EXIT_OK
    assert main(["test", "-j", "2"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "100% tests passed, 0 tests failed out of 6" in out

    last_run = json.loads((tmp_build_path / "Testing" / "last_run.json").read_text())
    assert {o["status"] for o in last_run["outcomes"]} == {TestStatus.PASSED.value}
    assert (tmp_build_path / "Testing" / "logs" / "ode.test_rk[Debug].log").exists()

    assert main(["rerun-failed"]) == EXIT_OK
    assert "No failed tests to re-run." in capsys.readouterr().out

    assert (prefix / "lib" / "Debug" / "libmini_ode.a").exists()
    assert (prefix / "lib" / "Release" / "libmini_ode.a").exists()
    assert (prefix / "include" / "ode" / "rk.h").exists()
    assert not (prefix / "lib" / "Release" / "libmini_glue.a").exists()
    assert (prefix / "lib" / "pkgconfig" / "mini.pc").exists()
    assert (prefix / "lib" / "pkgconfig" / "mini-Debug.pc").exists()


@pytest.mark.requires_cc
@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="shared build checked on Linux")
def test_shared_workflow(project_dir, tmp_path):
    prefix = tmp_path / "prefix"
    configure = [
        "configure",
        "--prefix",
        str(prefix),
        "--source-dir",
        str(project_dir),
        "--tests",
        "--shared",
        "--dynamic-runtime",
        "--module",
        "ode",
    ]
    assert main(configure) == EXIT_OK
    assert main(["build"]) == EXIT_OK
    assert main(["test", "-R", "ode|linalg"]) == EXIT_OK
    assert main(["install"]) == EXIT_OK
    assert (prefix / "lib" / "Release" / "libmini_ode.so").exists()


if __name__ == "__main__":
    pytest.main(sys.argv)
