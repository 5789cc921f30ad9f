"""Root of the libbuild exception hierarchy, and the errors shared between layers."""

from typing import Optional


class LibBuildError(RuntimeError):
    """Base class for every error raised by libbuild."""


class TestFailure(LibBuildError):
    """A test did not pass. Carries the test name and its captured output."""

    __test__ = False

    def __init__(self, name: str, output: str = "", returncode: Optional[int] = None) -> None:
        self.name = name
        self.output = output
        self.returncode = returncode
        super().__init__(self._message())

    def _message(self) -> str:
        return f"Test '{self.name}' failed with exit status {self.returncode}"


class TestTimeout(TestFailure):
    """A test did not complete within its timeout and was killed."""

    def __init__(self, name: str, output: str = "", timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        super().__init__(name, output)

    def _message(self) -> str:
        if self.timeout is None:
            return f"Test '{self.name}' timed out"
        return f"Test '{self.name}' timed out after {self.timeout:g}s"


class UnknownConfiguration(LibBuildError, KeyError):
    """Raised when a configuration is not part of the build plan."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Configuration '{name}' is not part of the build plan")

    def __str__(self) -> str:
        return self.args[0]
