"""Diagnostic records emitted during resolution and validation."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

logger = logging.getLogger(__name__)


class DiagnosticKind(str, Enum):
    WARNING = "warning"
    INFO = "info"


# Diagnostic codes
YANKED = "yanked"
COMPATIBILITY = "compatibility"
DIRECT_MISMATCH = "direct-mismatch"
UNRANKED_VERSION = "unranked-version"
MISSING_VERSION = "missing-version"


@dataclass(frozen=True)
class Diagnostic:
    """A single non-fatal finding about a resolution."""

    kind: DiagnosticKind
    code: str
    message: str
    module: Optional[str] = None
    version: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class DiagnosticLog:
    """
    Collects diagnostics for one computation and mirrors them to logging.

    Warnings are logged at WARNING level and notes at INFO level, so the CLI's
    log level decides what reaches the console while callers still get the
    full list from ``records``.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.records: List[Diagnostic] = []
        self._log = log or logger

    def warning(self, code: str, message: str, module: str = None, version: str = None) -> Diagnostic:
        self._log.warning(message)
        return self._add(Diagnostic(DiagnosticKind.WARNING, code, message, module, version))

    def info(self, code: str, message: str, module: str = None, version: str = None) -> Diagnostic:
        self._log.info(message)
        return self._add(Diagnostic(DiagnosticKind.INFO, code, message, module, version))

    def extend(self, diagnostics: List[Diagnostic]) -> None:
        self.records.extend(diagnostics)

    def by_code(self, code: str) -> List[Diagnostic]:
        return [d for d in self.records if d.code == code]

    def _add(self, diagnostic: Diagnostic) -> Diagnostic:
        self.records.append(diagnostic)
        return diagnostic

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
