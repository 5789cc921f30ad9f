"""Installation of compiled artifacts into a prefix."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Sequence

from libbuild.data import (
    Artifact,
    ConfigurationName,
    InstallManifest,
    PackageInfo,
    save_json_file,
)
from libbuild.errors import LibBuildError
from libbuild.logging import get_logger
from libbuild.modules import topological_order

from .descriptors import (
    InstalledTarget,
    cmake_package_dir,
    render_cmake_config,
    render_cmake_version,
    render_pkg_config,
    target_name,
)

logger = get_logger("Installer")

MANIFEST_FILE_NAME = "install_manifest.json"


class InstallIOError(LibBuildError):
    """Raised when a file cannot be copied or written during installation.

    Files installed before the failure are left in place and listed in ``completed``.
    """

    def __init__(self, path: Path, completed: Sequence[str], reason: str) -> None:
        self.path = path
        self.completed = list(completed)
        self.reason = reason
        super().__init__(
            f"Failed to install '{path}': {reason} "
            f"({len(self.completed)} file(s) installed before the failure)"
        )


def default_configuration(configurations: Iterable[ConfigurationName]) -> ConfigurationName:
    """Release if it was built, else the first configuration by name."""
    names = sorted({ConfigurationName(c) for c in configurations}, key=lambda c: c.value)
    if not names:
        raise ValueError("No configurations to choose from")
    if ConfigurationName.RELEASE in names:
        return ConfigurationName.RELEASE
    return names[0]


class Installer:
    """Copies artifacts into an installation prefix and writes the package descriptors.

    Installing is deterministic: the same artifacts always produce the same files with the
    same content, so re-installing over an existing prefix is idempotent.
    """

    def __init__(self, package: PackageInfo) -> None:
        self.package = package
        self._completed: List[str] = []

    def install(self, artifacts: Sequence[Artifact], prefix: Path) -> InstallManifest:
        """Install artifacts below ``prefix``.

        Parameters
        ----------
        artifacts : Sequence[Artifact]
            Artifacts of every configuration to install.
        prefix : Path
            Installation prefix. Created if it does not exist.

        Returns
        -------
        InstallManifest
            The installed files and targets. Also written to
            ``share/<package>/install_manifest.json``.

        Raises
        ------
        ValueError
            If no artifacts are given or an artifact's dependency is missing from its
            configuration.
        InstallIOError
            If copying or writing a file fails.
        """
        if not artifacts:
            raise ValueError("No artifacts to install")
        self._check_dependencies(artifacts)

        prefix = Path(prefix).absolute()
        self._completed = []
        by_module: Dict[str, List[Artifact]] = {}
        for artifact in artifacts:
            by_module.setdefault(artifact.module, []).append(artifact)
        order = topological_order(
            {name: group[0] for name, group in by_module.items()}, by_module
        )
        configurations = sorted({a.configuration for a in artifacts}, key=lambda c: c.value)
        default = default_configuration(configurations)

        logger.info(
            "Installing %d module(s) [%s] into %s",
            len(order),
            ", ".join(c.value for c in configurations),
            prefix,
        )

        targets = []
        for name in order:
            locations = {}
            for artifact in sorted(by_module[name], key=lambda a: a.configuration.value):
                rel = f"lib/{artifact.configuration.value}/{artifact.library.name}"
                self._copy(artifact.library, prefix, rel, keep_mode=True)
                locations[artifact.configuration] = rel
            for header in by_module[name][0].headers:
                self._copy(header.source, prefix, f"include/{header.relative_path}")
            first = by_module[name][0]
            targets.append(
                InstalledTarget(
                    module=name,
                    kind=first.kind,
                    link_name=first.link_name,
                    locations=locations,
                    dependencies=list(first.dependencies),
                    system_libraries=list(first.system_libraries),
                )
            )

        cmake_dir = cmake_package_dir(self.package)
        self._write(
            prefix,
            f"{cmake_dir}/{self.package.name}-config.cmake",
            render_cmake_config(self.package, targets, default),
        )
        self._write(
            prefix,
            f"{cmake_dir}/{self.package.name}-config-version.cmake",
            render_cmake_version(self.package),
        )

        for cfg in configurations:
            link_names, system_libs = _pkg_config_libs(targets, cfg)
            content = render_pkg_config(
                self.package, cfg, link_names, system_libs, kind=targets[0].kind
            )
            if cfg == default:
                self._write(prefix, f"lib/pkgconfig/{self.package.name}.pc", content)
            if len(configurations) > 1:
                self._write(
                    prefix, f"lib/pkgconfig/{self.package.name}-{cfg.value}.pc", content
                )

        manifest_rel = f"share/{self.package.name}/{MANIFEST_FILE_NAME}"
        self._completed.append(manifest_rel)
        manifest = InstallManifest(
            prefix=prefix,
            package=self.package.name,
            version=self.package.version,
            files=sorted(set(self._completed)),
            targets=sorted(target_name(self.package, t.module) for t in targets),
        )
        manifest_path = prefix / manifest_rel
        try:
            manifest_path.parent.mkdir(parents=True, exist_ok=True)
            save_json_file(manifest, manifest_path)
        except OSError as e:
            self._completed.remove(manifest_rel)
            raise InstallIOError(manifest_path, self._completed, str(e)) from e

        logger.info("Installed %d file(s)", len(manifest.files))
        return manifest

    @staticmethod
    def _check_dependencies(artifacts: Sequence[Artifact]) -> None:
        present = {(a.module, a.configuration) for a in artifacts}
        for artifact in artifacts:
            for dep in artifact.dependencies:
                if (dep, artifact.configuration) not in present:
                    raise ValueError(
                        f"Artifact '{artifact.module}' [{artifact.configuration.value}] depends "
                        f"on '{dep}', which is not among the installed artifacts"
                    )

    def _copy(self, source: Path, prefix: Path, rel: str, keep_mode: bool = False) -> None:
        dest = prefix / rel
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            if keep_mode:
                shutil.copy(source, dest)
            else:
                shutil.copyfile(source, dest)
        except OSError as e:
            raise InstallIOError(dest, self._completed, str(e)) from e
        logger.debug("Installed %s", rel)
        self._completed.append(rel)

    def _write(self, prefix: Path, rel: str, content: str) -> None:
        dest = prefix / rel
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_text(content)
        except OSError as e:
            raise InstallIOError(dest, self._completed, str(e)) from e
        logger.debug("Wrote %s", rel)
        self._completed.append(rel)


def _pkg_config_libs(targets: Sequence[InstalledTarget], cfg: ConfigurationName):
    """Link names (dependents first) and system libraries of the targets built for ``cfg``."""
    built = [t for t in targets if cfg in t.locations]
    link_names = [t.link_name for t in reversed(built)]
    system_libs: Dict[str, None] = {}
    for target in built:
        for lib in target.system_libraries:
            system_libs[lib] = None
    return link_names, list(system_libs)
