"""Mapping diagnostics collected during expand and flatten."""
from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class MappingDiagnostic:
    """A structural mismatch found while mapping one field."""
    severity: Severity
    path: str
    summary: str

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.path}: {self.summary}"


@dataclass
class Diagnostics:
    """Out-of-band sink for mapping diagnostics.

    Diagnostics never alter the mapped output; they travel next to it.
    """
    items: list[MappingDiagnostic] = field(default_factory=list)

    def warn(self, path: str, summary: str) -> None:
        self.items.append(MappingDiagnostic(Severity.WARNING, path, summary))

    def error(self, path: str, summary: str) -> None:
        self.items.append(MappingDiagnostic(Severity.ERROR, path, summary))

    def extend(self, other: "Diagnostics") -> None:
        self.items.extend(other.items)

    @property
    def warnings(self) -> list[MappingDiagnostic]:
        return [d for d in self.items if d.severity == Severity.WARNING]

    @property
    def errors(self) -> list[MappingDiagnostic]:
        return [d for d in self.items if d.severity == Severity.ERROR]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def to_list(self) -> list[str]:
        return [str(d) for d in self.items]
