"""Custom build hook for Hatchling to generate build info."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface

PACKAGE = "pageflow"
BUILD_INFO = f"{PACKAGE}/_build_info.py"


class CustomBuildHook(BuildHookInterface):
    """Writes the commit and commit date into the built package."""

    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        self._generate_build_info()
        build_data.setdefault("artifacts", []).append(BUILD_INFO)

    def _generate_build_info(self) -> None:
        project_root = Path(self.root)
        commit = self._run_git(["rev-parse", "HEAD"], cwd=project_root)
        date = self._run_git(["show", "-s", "--format=%cI", "HEAD"], cwd=project_root)

        content = (
            "# Generated by hatch_build.py; do not edit.\n"
            f"COMMIT = {commit!r}\n"
            f"DATE = {date!r}\n"
        )
        (project_root / BUILD_INFO).write_text(content, encoding="utf-8")

    @staticmethod
    def _run_git(args: list[str], cwd: Path) -> str | None:
        try:
            out = subprocess.check_output(["git", *args], cwd=str(cwd), stderr=subprocess.DEVNULL)
            return out.decode().strip() or None
        except (subprocess.CalledProcessError, FileNotFoundError, OSError):
            # Builds from a source tarball have no git metadata
            return None
