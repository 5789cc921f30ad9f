import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from libbuild import api
from libbuild.configure import ConfigurationError
from libbuild.data import BuildOptions, ConfigurationName
from libbuild.env import get_libbuild_build_path
from libbuild.errors import LibBuildError, UnknownConfiguration
from libbuild.logging import configure_logging
from libbuild.modules import ModuleRegistry, ModuleRegistryError

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


def modules(args: argparse.Namespace) -> int:
    """List the modules of the project with their dependencies."""
    registry = ModuleRegistry.from_path(args.source_dir)
    package = registry.package
    print(f"{package.name} {package.version}: {len(registry)} module(s)")
    for module in registry.list_modules():
        deps = ", ".join(module.dependencies) if module.dependencies else "-"
        binding = " (optional binding)" if module.optional_binding else ""
        print(f"- {module.name}{binding}: depends on {deps}")
    return EXIT_OK


def configure(args: argparse.Namespace) -> int:
    options = BuildOptions(
        install_prefix=args.prefix,
        modules=args.module or [],
        multi_config=args.multi_config,
        tests_enabled=args.tests,
        shared_libs=args.shared,
        runtime_linkage_dynamic=args.dynamic_runtime,
        excluded_bindings=args.exclude or [],
        configurations=args.config or [ConfigurationName.RELEASE],
        source_dir=args.source_dir,
        build_dir=args.build_dir,
        jobs=args.jobs,
    )
    plan = api.configure(options)
    print(f"Configured {plan.package.name} {plan.package.version} in {plan.build_dir}")
    print(f"- Modules:        {' '.join(plan.module_names())}")
    print(f"- Configurations: {' '.join(c.name.value for c in plan.configurations)}")
    print(f"- Libraries:      {plan.library_kind.value}")
    print(f"- Tests:          {'enabled' if plan.tests_enabled else 'disabled'}")
    if plan.excluded:
        print(f"- Excluded:       {' '.join(plan.excluded)}")
    return EXIT_OK


def build(args: argparse.Namespace) -> int:
    plan = api.load_plan(_build_dir(args))
    report = api.build(plan, configuration=args.config)
    print(report.summary())
    return EXIT_OK if report.success else EXIT_FAILURE


def install(args: argparse.Namespace) -> int:
    build_dir = _build_dir(args)
    plan = api.load_plan(build_dir)
    report = api.load_report(build_dir)
    if not report.artifacts:
        print("Nothing to install: no module was built.")
        return EXIT_FAILURE
    manifest = api.install(report, plan.install_prefix, plan.package)
    print(f"Installed {len(manifest.files)} file(s) into {manifest.prefix}")
    for target in manifest.targets:
        print(f"- {target}")
    return EXIT_OK if report.success else EXIT_FAILURE


def test(args: argparse.Namespace) -> int:
    build_dir = _build_dir(args)
    plan = api.load_plan(build_dir)
    report = api.load_report(build_dir)
    result = api.test(
        report, plan, pattern=args.pattern, concurrency=args.jobs, timeout=args.timeout
    )
    print(result.summary())
    return EXIT_OK if result.success else EXIT_FAILURE


def rerun_failed(args: argparse.Namespace) -> int:
    build_dir = _build_dir(args)
    previous = api.load_last_run(build_dir)
    result = api.rerun_failed(
        previous,
        build_dir=build_dir,
        concurrency=args.jobs,
        timeout=args.timeout,
        report=api.load_report(build_dir),
        plan=api.load_plan(build_dir),
    )
    if not result.total:
        print("No failed tests to re-run.")
        return EXIT_OK
    print(result.summary())
    return EXIT_OK if result.success else EXIT_FAILURE


def _build_dir(args: argparse.Namespace) -> Path:
    return args.build_dir or get_libbuild_build_path()


def _add_build_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--build-dir",
        type=Path,
        help="Build tree. Defaults to LIBBUILD_BUILD_PATH or ./build.",
    )


def _add_test_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-j", "--jobs", type=int, default=1, help="Number of tests to run concurrently."
    )
    parser.add_argument(
        "--timeout", type=float, help="Per-test timeout in seconds (default: 1500)."
    )


def _configuration_names() -> List[str]:
    return [c.value for c in ConfigurationName]


def make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="libbuild: selective, multi-configuration native library builds",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )

    command_subparsers = parser.add_subparsers(
        dest="command", required=True, help="Primary commands"
    )

    modules_parser = command_subparsers.add_parser("modules", help="List the project modules.")
    modules_parser.add_argument("--source-dir", type=Path, default=Path("."))
    modules_parser.set_defaults(func=modules)

    configure_parser = command_subparsers.add_parser(
        "configure", help="Resolve build options into a build plan."
    )
    configure_parser.add_argument("--prefix", type=Path, required=True, help="Install prefix.")
    configure_parser.add_argument(
        "--module",
        action="append",
        help="Module to build (repeatable). Dependencies are added. Default: all modules.",
    )
    configure_parser.add_argument(
        "--exclude", action="append", help="Optional binding module to leave out (repeatable)."
    )
    configure_parser.add_argument(
        "--config",
        action="append",
        choices=_configuration_names(),
        help="Configuration to build (repeatable; several need --multi-config).",
    )
    configure_parser.add_argument("--multi-config", action="store_true")
    configure_parser.add_argument("--tests", action="store_true", help="Build the test programs.")
    configure_parser.add_argument(
        "--shared", action="store_true", help="Build shared instead of static libraries."
    )
    configure_parser.add_argument(
        "--dynamic-runtime", action="store_true", help="Link the compiler runtime dynamically."
    )
    configure_parser.add_argument("--source-dir", type=Path, default=Path("."))
    configure_parser.add_argument("--jobs", type=int, help="Compilation worker pool size.")
    _add_build_dir(configure_parser)
    configure_parser.set_defaults(func=configure)

    build_parser = command_subparsers.add_parser("build", help="Compile the configured plan.")
    build_parser.add_argument(
        "--config", choices=_configuration_names(), help="Build only this configuration."
    )
    _add_build_dir(build_parser)
    build_parser.set_defaults(func=build)

    install_parser = command_subparsers.add_parser(
        "install", help="Install the built libraries, headers and descriptors."
    )
    _add_build_dir(install_parser)
    install_parser.set_defaults(func=install)

    test_parser = command_subparsers.add_parser("test", help="Run the built test programs.")
    test_parser.add_argument(
        "-R", "--pattern", help="Only run tests whose name matches this regular expression."
    )
    _add_test_options(test_parser)
    _add_build_dir(test_parser)
    test_parser.set_defaults(func=test)

    rerun_parser = command_subparsers.add_parser(
        "rerun-failed",
        help="Re-run the tests that failed in the last run, and skipped tests now built.",
    )
    _add_test_options(rerun_parser)
    _add_build_dir(rerun_parser)
    rerun_parser.set_defaults(func=rerun_failed)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = make_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return args.func(args)
    except (ConfigurationError, ModuleRegistryError, UnknownConfiguration, ValidationError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except FileNotFoundError as e:
        print(f"File not found: {e.filename}", file=sys.stderr)
        return EXIT_FAILURE
    except (LibBuildError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


def cli():
    sys.exit(main())
