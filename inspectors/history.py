"""
History scanning strategies.

Both strategies answer the same question (what non-target script does each
active branch contain) but differ in what they touch:

- StreamingHistoryScanner parses ``git log -p`` output and never touches the
  working directory, so branches of one repository may be scanned at once.
- CheckoutHistoryScanner checks every branch out into the single shared
  working directory and tree-scans it. Two checkouts at once would race, so
  it declares itself unsafe and the orchestrator runs it one branch at a time.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from config import ScanOptions
from inspectors.batcher import run_batched
from inspectors.diff_stream import scan_branch_history
from inspectors.file_tree import scan_tree
from inspectors.git_transport import GitTransport
from reporting.models import (
    Branch,
    FailureKind,
    Finding,
    ScanResult,
    SkipRecord,
    UnitFailure,
)

logger = logging.getLogger(__name__)


@dataclass
class BranchScan:
    """What one strategy found on one branch."""
    branch: str
    commit_findings: List[Finding] = field(default_factory=list)
    tree_findings: Optional[ScanResult] = None
    skipped: List[SkipRecord] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)


@dataclass
class HistoryScan:
    """Every branch scan of one repository plus the branches that failed."""
    branches: List[BranchScan] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)


class HistoryScanner(ABC):
    """Capability interface for scanning the branches of one repository."""

    #: True when several branches of the same repository may be scanned at once.
    concurrency_safe: bool = False

    def __init__(self, options: Optional[ScanOptions] = None,
                 transport: Optional[GitTransport] = None):
        self.options = options or ScanOptions()
        self.transport = transport or GitTransport()

    @abstractmethod
    def scan_branch(self, repo_path: str, branch: str) -> BranchScan:
        """Scan one branch; raise on transport failure."""

    def effective_batch_width(self) -> int:
        """Branch fan-out for this strategy: 1 unless it is concurrency-safe."""
        return max(1, self.options.batch_width) if self.concurrency_safe else 1

    def scan_branches(self, repo_path: str, branches: Sequence[Branch]) -> HistoryScan:
        """
        Scan ``branches`` through the batcher, isolating per-branch failures.
        """
        names = [b.name for b in branches]
        outcomes = run_batched(
            names,
            lambda name: self.scan_branch(repo_path, name),
            batch_width=self.effective_batch_width(),
            thread_name_prefix="BranchScan",
        )

        result = HistoryScan()
        for outcome in outcomes:
            if outcome.ok:
                result.branches.append(outcome.value)
                continue
            logger.warning(f"[HISTORY] Branch {outcome.item} abandoned: {outcome.error}")
            result.failures.append(UnitFailure(
                unit=outcome.item, kind=FailureKind.BRANCH, message=str(outcome.error),
            ))
        return result


class StreamingHistoryScanner(HistoryScanner):
    """Parses each branch's patch history; canonical strategy."""

    concurrency_safe = True

    def __init__(self, options: Optional[ScanOptions] = None,
                 transport: Optional[GitTransport] = None,
                 now: Optional[datetime] = None):
        super().__init__(options, transport)
        self.now = now

    def scan_branch(self, repo_path: str, branch: str) -> BranchScan:
        findings = scan_branch_history(
            repo_path,
            branch,
            since=self.options.recency_threshold,
            options=self.options,
            transport=self.transport,
            now=self.now,
        )
        return BranchScan(branch=branch, commit_findings=findings)


class CheckoutHistoryScanner(HistoryScanner):
    """Checks each branch out into the shared working tree and tree-scans it."""

    concurrency_safe = False

    def scan_branch(self, repo_path: str, branch: str) -> BranchScan:
        logger.info(f"[HISTORY] Checking out branch: {branch}")
        self.transport.checkout(repo_path, branch)
        tree = scan_tree(repo_path, self.options, branch=branch)
        return BranchScan(
            branch=branch,
            tree_findings=tree.findings,
            skipped=tree.skipped,
            failures=tree.failures,
        )


def make_history_scanner(options: ScanOptions,
                         transport: Optional[GitTransport] = None) -> HistoryScanner:
    """Streaming unless checkout mode was explicitly configured."""
    if options.checkout_mode:
        return CheckoutHistoryScanner(options, transport)
    return StreamingHistoryScanner(options, transport)
