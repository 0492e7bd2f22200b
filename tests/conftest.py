from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from ffigen.bindings import BindingEmitter
from ffigen.config import Config
from ffigen.interface import ComponentInterface
from tests._fixtures.workspace_builder import WorkspaceBuilder


class RecordingEmitter(BindingEmitter):
    """Test double that records write_bindings invocations."""

    def __init__(self, language: str, *, requires_cdylib: bool = True) -> None:
        self.language = language
        self.requires_cdylib = requires_cdylib
        self.calls: List[dict] = []

    def write_bindings(
        self,
        ci: ComponentInterface,
        config: Config,
        out_dir: Path,
        *,
        try_format_code: bool = True,
    ) -> List[Path]:
        self.calls.append(
            {
                "crate_name": ci.crate_name,
                "config": config.as_dict(),
                "out_dir": out_dir,
                "try_format_code": try_format_code,
            }
        )
        return []


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a reusable workspace builder rooted at the pytest tmp_path."""
    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def recording_emitters() -> dict:
    return {
        "kotlin": RecordingEmitter("kotlin"),
        "swift": RecordingEmitter("swift", requires_cdylib=False),
    }
