"""Installation of artifacts and generation of the package descriptors."""

from .descriptors import (
    InstalledTarget,
    cmake_package_dir,
    render_cmake_config,
    render_cmake_version,
    render_pkg_config,
    target_name,
)
from .installer import MANIFEST_FILE_NAME, InstallIOError, Installer, default_configuration

__all__ = [
    "Installer",
    "InstallIOError",
    "InstalledTarget",
    "MANIFEST_FILE_NAME",
    "cmake_package_dir",
    "default_configuration",
    "render_cmake_config",
    "render_cmake_version",
    "render_pkg_config",
    "target_name",
]
