from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class IdWarningResult:
    """
    Advisory output of the German ID compliance checks.

    warnings are in check order. checks_unavailable is True when no face was
    available, in which case the only warning says so.
    """
    warnings: Tuple[str, ...]
    checks_unavailable: bool

    @property
    def passed(self) -> bool:
        return not self.warnings and not self.checks_unavailable
