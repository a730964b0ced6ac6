from __future__ import annotations

from dataclasses import dataclass
from typing import List

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A finding about a corpus; only ERROR issues make validation fail."""
    code: str
    message: str
    severity: str = ERROR

    def __str__(self) -> str:
        return f"[{self.severity}] {self.code}: {self.message}"


class ValidationError(Exception):
    """Raised with every error-severity issue found in one pass."""

    def __init__(self, issues: List[ValidationIssue]):
        self.issues = issues
        super().__init__("; ".join(str(i) for i in issues))

    @property
    def codes(self) -> List[str]:
        return [i.code for i in self.issues]
