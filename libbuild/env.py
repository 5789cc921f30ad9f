"""Environment variable lookups."""

import os
from pathlib import Path


def get_libbuild_build_path() -> Path:
    """Get the default build tree. Reads LIBBUILD_BUILD_PATH, defaulting to ./build.

    Returns
    -------
    Path
        The build tree path, made absolute.
    """
    return Path(os.environ.get("LIBBUILD_BUILD_PATH", "build")).absolute()


def get_libbuild_jobs() -> int:
    """Get the default worker pool size. Reads LIBBUILD_JOBS, defaulting to the CPU count.

    Returns
    -------
    int
        A positive number of workers.

    Raises
    ------
    ValueError
        If LIBBUILD_JOBS is set but is not a positive integer.
    """
    value = os.environ.get("LIBBUILD_JOBS")
    if value is None:
        return os.cpu_count() or 1
    jobs = int(value)
    if jobs < 1:
        raise ValueError(f"LIBBUILD_JOBS must be >= 1, got {value}")
    return jobs
