"""Base classes for binding emitter plugins."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List

from ..config import Config
from ..errors import BindingValidationError
from ..interface import ComponentInterface


class TargetLanguage(str, Enum):
    """Languages with a built-in emitter."""

    KOTLIN = "kotlin"
    SWIFT = "swift"
    PYTHON = "python"
    RUBY = "ruby"

    @property
    def requires_cdylib(self) -> bool:
        # Swift bindings link the static library; everything else loads the cdylib at runtime.
        return self is not TargetLanguage.SWIFT

    @classmethod
    def parse(cls, value: str) -> "TargetLanguage":
        try:
            return cls(value.strip().lower())
        except ValueError:
            known = ", ".join(language.value for language in cls)
            raise BindingValidationError(f"Unknown target language {value!r} (expected one of: {known})") from None

    def __str__(self) -> str:
        return self.value


class BindingEmitter(ABC):
    """Contract for emitters that write one language's bindings for a component."""

    language: str = ""
    requires_cdylib: bool = True

    @abstractmethod
    def write_bindings(
        self,
        ci: ComponentInterface,
        config: Config,
        out_dir: Path,
        *,
        try_format_code: bool = True,
    ) -> List[Path]:
        """Write generated sources below ``out_dir`` and return their paths."""
