"""Shared validation types used by the content validators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

Severity = Literal["error", "warning"]


class GatingIssueType(StrEnum):
    UNREACHABLE_NEXT_NODE = "unreachable_next_node"
    NO_CHOICES = "no_choices"
    ALL_CHOICES_GATED = "all_choices_gated"
    MISSING_START_NODE = "missing_start_node"


class PatternUnlockIssueType(StrEnum):
    MISSING_NODE = "missing_node"
    INVALID_THRESHOLD = "invalid_threshold"
    EMPTY_DESCRIPTION = "empty_description"


class RegistryIssueType(StrEnum):
    ID_SCHEME_VIOLATION = "id_scheme_violation"
    UNPAIRED_ENTRY = "unpaired_entry"
    ID_MISMATCH = "id_mismatch"
    CHARACTER_MISMATCH = "character_mismatch"
    MISSING_GRAPH = "missing_graph"
    MISSING_ENTRY_NODE = "missing_entry_node"
    MISSING_PHASE = "missing_phase"
    MISSING_DIFFICULTY = "missing_difficulty"
    METADATA_MISMATCH = "metadata_mismatch"


@dataclass(frozen=True)
class GatingIssue:
    """A structural or gating defect found on one node.

    Attributes:
        node_id: Node the issue was found on.
        character_id: Owning character of the graph.
        issue_type: Kind of defect.
        details: Human-readable explanation.
        severity: "error" blocks release, "warning" does not.
        target_node_id: The dangling target for unreachable_next_node.
    """

    node_id: str
    character_id: str
    issue_type: GatingIssueType
    details: str
    severity: Severity
    target_node_id: str | None = None


_UNLOCK_SEVERITY: dict[PatternUnlockIssueType, Severity] = {
    PatternUnlockIssueType.MISSING_NODE: "error",
    PatternUnlockIssueType.INVALID_THRESHOLD: "warning",
    PatternUnlockIssueType.EMPTY_DESCRIPTION: "warning",
}


@dataclass(frozen=True)
class PatternUnlockIssue:
    character_id: str
    pattern: str
    threshold: int
    node_id: str
    issue_type: PatternUnlockIssueType
    details: str

    @property
    def severity(self) -> Severity:
        return _UNLOCK_SEVERITY[self.issue_type]


@dataclass(frozen=True)
class RegistryIssue:
    """Drift between the content and engine simulation registries."""

    character_id: str
    simulation_id: str
    issue_type: RegistryIssueType
    details: str
    severity: Severity = "error"


def _count(issues: list, severity: Severity) -> int:
    return sum(1 for issue in issues if issue.severity == severity)


@dataclass
class ValidationResult:
    """Outcome of validating one character's dialogue graph.

    Attributes:
        valid: True iff there is no error-severity issue.
        gating_issues: Structural and gating issues.
        pattern_unlock_issues: Pattern unlock registry drift.
        summary: ``"<character>: N errors, M warnings"``.
    """

    character_id: str
    gating_issues: list[GatingIssue] = field(default_factory=list)
    pattern_unlock_issues: list[PatternUnlockIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return _count(self.gating_issues, "error") + _count(self.pattern_unlock_issues, "error")

    @property
    def warning_count(self) -> int:
        return _count(self.gating_issues, "warning") + _count(self.pattern_unlock_issues, "warning")

    @property
    def valid(self) -> bool:
        return self.error_count == 0

    @property
    def summary(self) -> str:
        return f"{self.character_id}: {self.error_count} errors, {self.warning_count} warnings"


@dataclass
class RegistryAlignmentResult:
    issues: list[RegistryIssue] = field(default_factory=list)
    checked_characters: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return _count(self.issues, "error") == 0

    @property
    def summary(self) -> str:
        errors = _count(self.issues, "error")
        warnings = _count(self.issues, "warning")
        return f"registries: {errors} errors, {warnings} warnings across {len(self.checked_characters)} characters"


@dataclass
class ContentReport:
    """Aggregated results of every content validator.

    Attributes:
        graphs: Per-character graph validation results.
        registry: Simulation registry alignment, if registries were checked.
    """

    graphs: dict[str, ValidationResult] = field(default_factory=dict)
    registry: RegistryAlignmentResult | None = None

    @property
    def has_failures(self) -> bool:
        """True if any validator reported an error."""
        graphs_failed = any(not result.valid for result in self.graphs.values())
        return graphs_failed or (self.registry is not None and not self.registry.valid)

    @property
    def has_warnings(self) -> bool:
        """True if any validator reported a warning."""
        graph_warnings = any(result.warning_count for result in self.graphs.values())
        registry_warnings = self.registry is not None and _count(self.registry.issues, "warning") > 0
        return graph_warnings or registry_warnings

    @property
    def summary(self) -> str:
        """Human-readable summary of all graphs and registries."""
        failed = [r for r in self.graphs.values() if not r.valid]
        warned = [r for r in self.graphs.values() if r.valid and r.warning_count]
        passed = [r for r in self.graphs.values() if r.valid and not r.warning_count]

        parts: list[str] = []
        if failed:
            parts.append(f"{len(failed)} failed")
        if warned:
            parts.append(f"{len(warned)} with warnings")
        if passed:
            parts.append(f"{len(passed)} passed")
        summary = f"graphs: {', '.join(parts) or 'none checked'}"
        if self.registry is not None:
            summary += f"; {self.registry.summary}"
        return summary
