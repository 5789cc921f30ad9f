"""Discovery and isolated execution of per-module test programs."""

from libbuild.errors import TestFailure, TestTimeout

from .discovery import case_name, compile_pattern, discover_tests, library_path_env
from .orchestrator import DEFAULT_TEST_TIMEOUT, InvalidTransition, TestOrchestrator
from .worker import run_test_case

__all__ = [
    "TestOrchestrator",
    "InvalidTransition",
    "DEFAULT_TEST_TIMEOUT",
    "TestFailure",
    "TestTimeout",
    "case_name",
    "compile_pattern",
    "discover_tests",
    "library_path_env",
    "run_test_case",
]
