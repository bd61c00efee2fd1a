"""
Inspection Data Models.

Defines the value types produced by the scanners and consumed by the
aggregator and the presentation layer.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Dict, Optional, Any, Tuple


# ============================================================
# ENUMS
# ============================================================

class SkipReason(Enum):
    """Why a file was left out of line-level scanning."""
    OVERSIZED = "oversized"
    BINARY = "binary"

    @property
    def display_label(self) -> str:
        labels = {
            "oversized": "Oversized",
            "binary": "Binary",
        }
        return labels.get(self.value, self.value)


class FailureKind(Enum):
    """Smallest unit a failure was isolated to."""
    READ = "read"
    BRANCH = "branch"
    PROJECT = "project"
    GROUP = "group"


# ============================================================
# DATACLASSES
# ============================================================

@dataclass(frozen=True)
class Branch:
    """A remote branch and its recency classification."""
    name: str
    last_commit_date: Optional[datetime] = None
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'last_commit_date': self.last_commit_date.isoformat() if self.last_commit_date else None,
            'active': self.active,
        }


@dataclass(frozen=True)
class Commit:
    """A commit identified while parsing a patch stream."""
    hash: str
    date: Optional[datetime] = None

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.hash,
            'short_hash': self.short_hash,
            'date': self.date.isoformat() if self.date else None,
        }


@dataclass(frozen=True)
class Finding:
    """
    A file containing at least one line of non-target script.

    line_numbers is ascending and unique. Diff-stream findings carry an empty
    tuple together with the commit that introduced the content.
    """
    file_path: str
    line_numbers: Tuple[int, ...] = ()
    commit: Optional[Commit] = None
    branch: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'file_path': self.file_path,
            'line_numbers': list(self.line_numbers),
            'commit': self.commit.to_dict() if self.commit else None,
            'branch': self.branch,
        }


# file_path -> Finding
ScanResult = Dict[str, Finding]


@dataclass(frozen=True)
class SkipRecord:
    """A file that was deliberately not scanned."""
    file_path: str
    reason: SkipReason

    def to_dict(self) -> Dict[str, Any]:
        return {'file_path': self.file_path, 'reason': self.reason.value}


@dataclass(frozen=True)
class UnitFailure:
    """A unit of work (file, branch, project, group) that failed in isolation."""
    unit: str
    kind: FailureKind
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'unit': self.unit, 'kind': self.kind.value, 'message': self.message}


@dataclass
class TreeScan:
    """Result of scanning one file tree."""
    findings: ScanResult = field(default_factory=dict)
    skipped: List[SkipRecord] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)

    @property
    def oversized(self) -> List[str]:
        return [s.file_path for s in self.skipped if s.reason is SkipReason.OVERSIZED]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'findings': {path: f.to_dict() for path, f in sorted(self.findings.items())},
            'skipped': [s.to_dict() for s in self.skipped],
            'failures': [f.to_dict() for f in self.failures],
        }


@dataclass
class RepositoryReport:
    """Everything found in one repository checkout."""
    repo_path: str
    branches: List[Branch] = field(default_factory=list)
    history: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    files: Dict[str, List[Dict[str, str]]] = field(default_factory=dict)
    tree: Optional[TreeScan] = None
    history_findings: List[Finding] = field(default_factory=list)
    skipped: List[SkipRecord] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)

    @property
    def has_findings(self) -> bool:
        return bool(self.history) or bool(self.files) or bool(self.tree and self.tree.findings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repo_path': self.repo_path,
            'branches': [b.to_dict() for b in self.branches],
            'gitInspect': self.history,
            'fileInspect': self.files,
            'tree': self.tree.to_dict() if self.tree else None,
            'skipped': [s.to_dict() for s in self.skipped],
            'failures': [f.to_dict() for f in self.failures],
        }


@dataclass
class ProjectReport:
    """Outcome of inspecting one remote project."""
    project_name: str
    url: str
    report: Optional[RepositoryReport] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the shape written to inspection-results-batch-N.json."""
        if not self.ok:
            return {'projectName': self.project_name, 'url': self.url, 'error': self.error}
        return {
            'projectName': self.project_name,
            'url': self.url,
            'gitInspect': self.report.history if self.report else {},
            'fileInspect': self.report.files if self.report else {},
            'failures': [f.to_dict() for f in self.report.failures] if self.report else [],
        }


@dataclass
class InspectionRun:
    """Outcome of a fleet inspection."""
    reports: List[ProjectReport] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)

    @property
    def successful(self) -> List[ProjectReport]:
        return [r for r in self.reports if r.ok]

    @property
    def failed(self) -> List[ProjectReport]:
        return [r for r in self.reports if not r.ok]
