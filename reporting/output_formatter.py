"""
Output Formatter.

Console rendering of tree scans and history findings, and the JSON files
written by fleet runs.
"""
import json
import logging
import os
from typing import Any, Dict, List, Sequence

from reporting import summarize_report
from reporting.aggregator import compress_line_ranges
from reporting.models import ProjectReport, RepositoryReport, TreeScan

logger = logging.getLogger(__name__)


def format_tree_scan(scan: TreeScan) -> List[str]:
    """Render a tree scan as console lines."""
    lines: List[str] = []
    if scan.oversized:
        lines.append('Skipped large files (>2GB):')
        lines.extend(f'   - {path}' for path in scan.oversized)
        lines.append('')

    if not scan.findings:
        lines.append('No non-English content found!')
        return lines

    lines.append('Non-English content detected:')
    lines.append('')
    for path, finding in sorted(scan.findings.items()):
        lines.append(f'File: {path}')
        lines.append(f'   Total Issues: {len(finding.line_numbers)}')
        lines.append(f'   Lines: {compress_line_ranges(finding.line_numbers)}')
    return lines


def format_history(history: Dict[str, Dict[str, List[str]]]) -> List[str]:
    """Render grouped history findings ({branch: {commit: [files]}})."""
    if not history:
        return ['No non-English content found in Git history!']

    lines = ['Non-English content detected in Git history:', '']
    for branch, commits in history.items():
        lines.append(f'Branch: {branch}')
        for commit, files in commits.items():
            lines.append(f'   Commit: {commit}')
            lines.extend(f'      - {name}' for name in files)
    return lines


def format_failures(report: RepositoryReport) -> List[str]:
    if not report.failures:
        return []
    lines = ['Failed units:']
    lines.extend(f'   - [{f.kind.value}] {f.unit}: {f.message}' for f in report.failures)
    return lines


def format_repository_report(report: RepositoryReport) -> str:
    """Full console rendering of one repository report."""
    sections: List[List[str]] = []
    if report.branches:
        sections.append(format_history(report.history))
    if report.files and report.tree is None:
        for branch, files in report.files.items():
            section = [f'Branch: {branch}']
            section.extend(f"   {entry['file']}: {entry['lines']}" for entry in files)
            sections.append(section)
    if report.tree is not None:
        sections.append(format_tree_scan(report.tree))
    failures = format_failures(report)
    if failures:
        sections.append(failures)

    summary = summarize_report(report)
    sections.append([
        f"Inspection complete: {summary['files_with_findings']} files, "
        f"{summary['offending_commits']} commits, {summary['failed_units']} failures",
    ])
    return '\n\n'.join('\n'.join(section) for section in sections)


def report_to_json(payload: Any) -> str:
    """Serialize a report (or list of reports) to indented JSON."""
    if isinstance(payload, (list, tuple)):
        data = [item.to_dict() for item in payload]
    else:
        data = payload.to_dict()
    return json.dumps(data, indent=2, ensure_ascii=False)


def _write_json(path: str, data: Any) -> str:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def save_batch_results(reports: Sequence[ProjectReport], batch_index: int, output_dir: str) -> str:
    """Write the successful reports of one batch to inspection-results-batch-N.json."""
    path = os.path.join(output_dir, f'inspection-results-batch-{batch_index + 1}.json')
    _write_json(path, [r.to_dict() for r in reports if r.ok])
    logger.info(f"[OUTPUT] Results saved to: {path}")
    return path


def save_failed_projects(reports: Sequence[ProjectReport], output_dir: str) -> str:
    """Write failed projects to failed-projects.json."""
    path = os.path.join(output_dir, 'failed-projects.json')
    _write_json(path, [
        {'projectName': r.project_name, 'url': r.url, 'error': r.error}
        for r in reports if not r.ok
    ])
    logger.info(f"[OUTPUT] Error log saved to: {path}")
    return path
