"""Rendering of the CMake package and pkg-config descriptors.

All descriptors locate the installation relative to their own directory, so an installed
tree can be moved as a whole. They contain no timestamps or absolute paths.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from pydantic import Field

from libbuild.data import ConfigurationName, LibraryKind, PackageInfo
from libbuild.data.utils import FrozenModelWithDocstrings, NonEmptyString

GENERATED_HEADER = "Generated by libbuild. Do not edit."


class InstalledTarget(FrozenModelWithDocstrings):
    """One installed module library as seen by the descriptors."""

    module: NonEmptyString
    """Module name."""
    kind: LibraryKind
    """Static archive or shared object."""
    link_name: NonEmptyString
    """Name passed to the linker with ``-l``."""
    locations: Dict[ConfigurationName, str] = Field(default_factory=dict)
    """Library path relative to the prefix, per installed configuration."""
    dependencies: List[str] = Field(default_factory=list)
    """Direct module dependencies."""
    system_libraries: List[str] = Field(default_factory=list)
    """System libraries the module links against."""


def cmake_package_dir(package: PackageInfo) -> str:
    """Directory of the CMake descriptors relative to the prefix."""
    return f"lib/cmake/{package.name}-{package.version}"


def target_name(package: PackageInfo, module: str) -> str:
    """Imported CMake target of a module, e.g. ``gsl::linalg``."""
    return f"{package.name}::{module}"


def render_cmake_config(
    package: PackageInfo,
    targets: Sequence[InstalledTarget],
    default_configuration: ConfigurationName,
) -> str:
    """Render ``<package>-config.cmake``.

    Parameters
    ----------
    package : PackageInfo
        The installed package.
    targets : Sequence[InstalledTarget]
        Installed module libraries, dependencies before their dependents.
    default_configuration : ConfigurationName
        Configuration used for the configuration-less ``IMPORTED_LOCATION``.

    Returns
    -------
    str
        The CMake script. One ``IMPORTED`` target is defined per module.
    """
    prefix_var = f"_{package.name}_PREFIX"
    lines = [
        f"# {GENERATED_HEADER}",
        f"# CMake package configuration for {package.name} {package.version}",
        "",
        f'get_filename_component({prefix_var} "${{CMAKE_CURRENT_LIST_DIR}}/../../.." ABSOLUTE)',
        "",
    ]
    for target in targets:
        name = target_name(package, target.module)
        link_libraries = [target_name(package, d) for d in target.dependencies]
        link_libraries.extend(target.system_libraries)
        configurations = sorted(target.locations, key=lambda c: c.value)
        default = (
            default_configuration
            if default_configuration in target.locations
            else configurations[0]
        )
        cmake_kind = "SHARED" if target.kind == LibraryKind.SHARED else "STATIC"

        lines.append(f"if(NOT TARGET {name})")
        lines.append(f"  add_library({name} {cmake_kind} IMPORTED)")
        lines.append(f"  set_target_properties({name} PROPERTIES")
        lines.append(f'    INTERFACE_INCLUDE_DIRECTORIES "${{{prefix_var}}}/include"')
        if link_libraries:
            lines.append(f'    INTERFACE_LINK_LIBRARIES "{";".join(link_libraries)}"')
        lines.append(
            f'    IMPORTED_CONFIGURATIONS "{";".join(c.value.upper() for c in configurations)}"'
        )
        lines.append(
            f'    IMPORTED_LOCATION "${{{prefix_var}}}/{target.locations[default]}"'
        )
        for cfg in configurations:
            lines.append(
                f"    IMPORTED_LOCATION_{cfg.value.upper()} "
                f'"${{{prefix_var}}}/{target.locations[cfg]}"'
            )
        lines.append("  )")
        lines.append("endif()")
        lines.append("")

    all_targets = " ".join(target_name(package, t.module) for t in targets)
    lines.append(f"set({package.name}_LIBRARIES {all_targets})")
    lines.append(f'set({package.name}_INCLUDE_DIRS "${{{prefix_var}}}/include")')
    lines.append(f"set({package.name}_FOUND TRUE)")
    lines.append(f"unset({prefix_var})")
    return "\n".join(lines) + "\n"


def render_cmake_version(package: PackageInfo) -> str:
    """Render ``<package>-config-version.cmake``.

    Any requested version up to the installed one is accepted; an exact match sets
    ``PACKAGE_VERSION_EXACT``.
    """
    return (
        f"# {GENERATED_HEADER}\n"
        f'set(PACKAGE_VERSION "{package.version}")\n'
        "\n"
        "if(PACKAGE_FIND_VERSION VERSION_GREATER PACKAGE_VERSION)\n"
        "  set(PACKAGE_VERSION_COMPATIBLE FALSE)\n"
        "else()\n"
        "  set(PACKAGE_VERSION_COMPATIBLE TRUE)\n"
        "  if(PACKAGE_FIND_VERSION STREQUAL PACKAGE_VERSION)\n"
        "    set(PACKAGE_VERSION_EXACT TRUE)\n"
        "  endif()\n"
        "endif()\n"
    )


def render_pkg_config(
    package: PackageInfo,
    configuration: ConfigurationName,
    link_names: Sequence[str],
    system_libraries: Sequence[str],
    kind: LibraryKind = LibraryKind.STATIC,
) -> str:
    """Render a pkg-config descriptor for one configuration.

    Consumers of static archives must link the system libraries themselves, so they go to
    ``Libs``. Shared libraries already record them and list them in ``Libs.private``.

    Parameters
    ----------
    package : PackageInfo
        The installed package.
    configuration : ConfigurationName
        Configuration whose library directory is referenced.
    link_names : Sequence[str]
        ``-l`` names of the module libraries in link order (dependents first).
    system_libraries : Sequence[str]
        System libraries the module libraries need.
    kind : LibraryKind
        Whether the module libraries are static archives or shared libraries.
    """
    description = package.description or f"{package.name} library"
    libs = ["-L${libdir}", *(f"-l{name}" for name in link_names)]
    private = [f"-l{lib}" for lib in system_libraries]
    if kind == LibraryKind.STATIC:
        libs.extend(private)
        private = []
    lines = [
        f"# {GENERATED_HEADER}",
        "prefix=${pcfiledir}/../..",
        f"libdir=${{prefix}}/lib/{configuration.value}",
        "includedir=${prefix}/include",
        "",
        f"Name: {package.name}",
        f"Description: {description}",
        f"Version: {package.version}",
        f"Libs: {' '.join(libs)}",
    ]
    if private:
        lines.append(f"Libs.private: {' '.join(private)}")
    lines.append("Cflags: -I${includedir}")
    return "\n".join(lines) + "\n"
