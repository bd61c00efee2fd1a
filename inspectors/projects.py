"""
Inspection orchestration.

Composes branch discovery, the history strategy and the tree scanner for a
single repository, a single remote project, and a fleet of projects. Every
operation returns its findings and failures as values.
"""
import logging
import os
import shutil
import tempfile
from typing import Any, Callable, List, Optional, Sequence

from config import ScanOptions
from inspectors.batcher import BatchOutcome, run_batched
from inspectors.branches import list_active_branches
from inspectors.errors import InspectionError
from inspectors.file_tree import scan_tree
from inspectors.git_transport import GitTransport
from inspectors.history import HistoryScanner, make_history_scanner
from reporting.aggregator import group_history_findings, group_tree_findings
from reporting.models import (
    FailureKind,
    InspectionRun,
    ProjectReport,
    RepositoryReport,
    UnitFailure,
)
from utils import project_name_from_url

logger = logging.getLogger(__name__)

# fileInspect key for the checked-out snapshot
WORKING_TREE = 'working-tree'


def inspect_repository(
    repo_path: str,
    options: Optional[ScanOptions] = None,
    strategy: Optional[HistoryScanner] = None,
    transport: Optional[GitTransport] = None,
) -> RepositoryReport:
    """
    Inspect the working tree and, when enabled, the branch history of a clone.

    Raises:
        ConfigurationError: the branch listing failed (history scans only).
    """
    options = options or ScanOptions()
    transport = transport or GitTransport()
    report = RepositoryReport(repo_path=repo_path)

    if options.scan_history:
        strategy = strategy or make_history_scanner(options, transport)
        report.branches = list_active_branches(
            repo_path,
            recency_threshold=options.recency_threshold,
            filter_enabled=options.filter_enabled,
            transport=transport,
        )

        history = strategy.scan_branches(repo_path, report.branches)
        report.failures.extend(history.failures)

        tree_by_branch = {}
        for branch_scan in history.branches:
            report.history_findings.extend(branch_scan.commit_findings)
            report.skipped.extend(branch_scan.skipped)
            report.failures.extend(branch_scan.failures)
            if branch_scan.tree_findings is not None:
                tree_by_branch[branch_scan.branch] = branch_scan.tree_findings

        report.history = group_history_findings(report.history_findings)
        report.files = group_tree_findings(tree_by_branch)

    # The checkout strategy already tree-scanned every branch
    if not (options.scan_history and options.checkout_mode):
        report.tree = scan_tree(repo_path, options)
        report.skipped.extend(report.tree.skipped)
        report.failures.extend(report.tree.failures)
        report.files.update(group_tree_findings({WORKING_TREE: report.tree.findings}))

    return report


def inspect_single_project(
    url: str,
    options: Optional[ScanOptions] = None,
    workdir: Optional[str] = None,
    transport: Optional[GitTransport] = None,
) -> ProjectReport:
    """
    Clone ``url`` into a temporary directory, inspect it, always clean up.

    Any failure is captured on the returned ProjectReport.
    """
    transport = transport or GitTransport()
    project_name = project_name_from_url(url)
    parent = tempfile.mkdtemp(prefix='lingo-', dir=workdir)
    target_path = os.path.join(parent, f'temp-clone-{project_name}')

    try:
        logger.info(f"[PROJECT] Cloning project: {project_name}")
        transport.clone(url, target_path)
        logger.info(f"[PROJECT] Inspecting files and git history for: {project_name}")
        report = inspect_repository(target_path, options, transport=transport)
        return ProjectReport(project_name=project_name, url=url, report=report)
    except (InspectionError, OSError) as e:
        logger.error(f"[PROJECT] Failed to inspect {project_name}: {e}")
        return ProjectReport(project_name=project_name, url=url, error=str(e))
    finally:
        shutil.rmtree(parent, ignore_errors=True)


def inspect_projects(
    urls: Sequence[str],
    options: Optional[ScanOptions] = None,
    on_batch: Optional[Callable[[int, List[ProjectReport]], Any]] = None,
    workdir: Optional[str] = None,
    transport: Optional[GitTransport] = None,
) -> InspectionRun:
    """
    Inspect many projects, ``options.batch_width`` at a time.

    Args:
        urls: Clone URLs.
        options: Scan configuration.
        on_batch: Called with (batch_index, reports of that batch) after
            every batch, e.g. to persist partial results.
        workdir: Parent directory for temporary clones.
        transport: Git transport.
    """
    options = options or ScanOptions()
    run = InspectionRun()

    def _reports(outcomes: List[BatchOutcome]) -> List[ProjectReport]:
        reports = []
        for outcome in outcomes:
            if outcome.ok:
                reports.append(outcome.value)
            else:
                reports.append(ProjectReport(
                    project_name=project_name_from_url(outcome.item),
                    url=outcome.item,
                    error=str(outcome.error),
                ))
        return reports

    def _on_batch(index: int, outcomes: List[BatchOutcome]) -> None:
        logger.info(f"[PROJECT] Batch {index + 1} complete ({len(outcomes)} projects)")
        if on_batch is not None:
            on_batch(index, _reports(outcomes))

    outcomes = run_batched(
        list(urls),
        lambda url: inspect_single_project(url, options, workdir, transport),
        batch_width=max(1, options.batch_width),
        on_batch=_on_batch,
        thread_name_prefix="ProjectScan",
    )

    run.reports = _reports(outcomes)
    run.failures = [
        UnitFailure(unit=r.url, kind=FailureKind.PROJECT, message=r.error)
        for r in run.reports if not r.ok
    ]
    logger.info(
        f"[PROJECT] All inspections complete: {len(run.successful)} succeeded, {len(run.failed)} failed"
    )
    return run
