"""Compiler and linker flags of the named build configurations."""

from pathlib import Path
from typing import Dict, Tuple

from libbuild.data import BuildConfiguration, ConfigurationName

CONFIGURATION_FLAGS: Dict[ConfigurationName, Tuple[str, ...]] = {
    ConfigurationName.DEBUG: ("-O0", "-g"),
    ConfigurationName.RELEASE: ("-O2", "-DNDEBUG"),
    ConfigurationName.REL_WITH_DEB_INFO: ("-O2", "-g", "-DNDEBUG"),
    ConfigurationName.MIN_SIZE_REL: ("-Os", "-DNDEBUG"),
}
"""Optimisation and debug flags per configuration."""

STATIC_RUNTIME_LINK_FLAGS: Tuple[str, ...] = ("-static-libgcc",)
"""Link flags used when the compiler runtime is linked statically."""


def make_configuration(
    name: ConfigurationName, build_dir: Path, runtime_linkage_dynamic: bool
) -> BuildConfiguration:
    """Create the configuration ``name`` with its output directory below ``build_dir``.

    Parameters
    ----------
    name : ConfigurationName
        The configuration to create.
    build_dir : Path
        Root of the build tree. The configuration builds into ``build_dir / name``.
    runtime_linkage_dynamic : bool
        Whether the compiler runtime is linked dynamically.

    Returns
    -------
    BuildConfiguration
        The configuration.
    """
    name = ConfigurationName(name)
    link_flags = () if runtime_linkage_dynamic else STATIC_RUNTIME_LINK_FLAGS
    return BuildConfiguration(
        name=name,
        compile_flags=CONFIGURATION_FLAGS[name],
        link_flags=link_flags,
        output_dir=build_dir / name.value,
    )
