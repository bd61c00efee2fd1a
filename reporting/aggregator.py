"""
Result Aggregator.

Merges findings keyed by identity (path, branch, commit), never by arrival
order, and compresses line numbers into range strings.
"""
import posixpath
from typing import Dict, Iterable, List, Mapping, Tuple

from reporting.models import Finding, ScanResult


def dedupe_line_numbers(lines: Iterable[int]) -> Tuple[int, ...]:
    """Return the unique line numbers in ascending order."""
    return tuple(sorted(set(lines)))


def compress_line_ranges(lines: Iterable[int]) -> str:
    """
    Collapse line numbers into a comma-joined range list.

    Consecutive integers become ``start-end``, singletons stay bare:
    [3, 4, 5, 9] -> "3-5, 9". An empty input yields "".
    """
    ordered = dedupe_line_numbers(lines)
    if not ordered:
        return ''

    ranges = []
    start = end = ordered[0]
    for number in ordered[1:]:
        if number == end + 1:
            end = number
            continue
        ranges.append(f"{start}" if start == end else f"{start}-{end}")
        start = end = number
    ranges.append(f"{start}" if start == end else f"{start}-{end}")
    return ', '.join(ranges)


def merge_scan_results(*results: ScanResult) -> ScanResult:
    """Union several ScanResults; line numbers of the same path are merged."""
    merged: Dict[str, Finding] = {}
    for result in results:
        for path, finding in result.items():
            existing = merged.get(path)
            if existing is None:
                merged[path] = Finding(
                    file_path=path,
                    line_numbers=dedupe_line_numbers(finding.line_numbers),
                    commit=finding.commit,
                    branch=finding.branch,
                )
                continue
            merged[path] = Finding(
                file_path=path,
                line_numbers=dedupe_line_numbers(existing.line_numbers + finding.line_numbers),
                commit=existing.commit or finding.commit,
                branch=existing.branch or finding.branch,
            )
    return merged


def group_history_findings(findings: Iterable[Finding]) -> Dict[str, Dict[str, List[str]]]:
    """
    Group diff-stream findings by branch, then by short commit hash.

    Returns:
        {branch: {short_hash: [file basenames]}}; one basename per file path,
        ordered by full path, so distinct files sharing a basename are all
        listed.
    """
    grouped: Dict[str, Dict[str, set]] = {}
    for finding in findings:
        branch = finding.branch or ''
        commit = finding.commit.short_hash if finding.commit else ''
        grouped.setdefault(branch, {}).setdefault(commit, set()).add(finding.file_path)

    return {
        branch: {
            commit: [posixpath.basename(path) for path in sorted(paths)]
            for commit, paths in sorted(commits.items())
        }
        for branch, commits in sorted(grouped.items())
    }


def group_tree_findings(results_by_branch: Mapping[str, ScanResult]) -> Dict[str, List[Dict[str, str]]]:
    """
    Render per-branch tree scans as basename + compressed range entries.

    Files whose range string is empty are dropped, and so are branches left
    with no files.
    """
    grouped: Dict[str, List[Dict[str, str]]] = {}
    for branch, result in sorted(results_by_branch.items()):
        files = []
        for path, finding in sorted(result.items()):
            lines = compress_line_ranges(finding.line_numbers)
            if not lines:
                continue
            files.append({'file': posixpath.basename(path), 'lines': lines})
        if files:
            grouped[branch] = files
    return grouped
