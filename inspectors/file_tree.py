"""
File Tree Scanner.

Walks a directory (hidden files included), skips excluded paths, oversized
files and binary files, and streams every remaining file line by line to
record each line holding non-target script.
"""
import fnmatch
import logging
import os
from typing import Iterator, List, Optional, Tuple

from config import Config, ScanOptions
from inspectors.batcher import run_batched
from inspectors.classifier import contains_non_target_script, is_binary
from reporting.models import (
    FailureKind,
    Finding,
    SkipReason,
    SkipRecord,
    TreeScan,
    UnitFailure,
)

logger = logging.getLogger(__name__)


def _to_posix(relative_path: str) -> str:
    return relative_path.replace(os.sep, '/')


def is_excluded_path(relative_path: str, options: ScanOptions) -> bool:
    """Match '/' + relative path (plus a trailing '/') against the path globs."""
    candidate = '/' + _to_posix(relative_path).strip('/') + '/'
    return any(fnmatch.fnmatchcase(candidate, pattern) for pattern in options.excluded_path_globs)


def iter_candidate_files(root_path: str, options: Optional[ScanOptions] = None) -> Iterator[str]:
    """
    Lazily yield relative posix paths of files that should be scanned.

    Excluded directories are pruned before descending into them.
    """
    options = options or ScanOptions()
    root_path = os.path.abspath(root_path)

    for dirpath, dirnames, filenames in os.walk(root_path):
        rel_dir = os.path.relpath(dirpath, root_path)
        rel_dir = '' if rel_dir == '.' else rel_dir

        dirnames[:] = sorted(
            d for d in dirnames
            if not is_excluded_path(os.path.join(rel_dir, d), options)
        )

        for filename in sorted(filenames):
            rel_path = os.path.join(rel_dir, filename)
            if options.is_excluded_extension(filename):
                continue
            if is_excluded_path(rel_path, options):
                continue
            yield _to_posix(rel_path)


def _file_size(path: str) -> int:
    return os.stat(path).st_size


def _read_sample(path: str, size: int = Config.BINARY_SAMPLE_SIZE) -> bytes:
    with open(path, 'rb') as f:
        return f.read(size)


def scan_lines(path: str) -> List[int]:
    """
    Return 1-based numbers of lines containing non-target script.

    The file is read one ``\\n``-terminated line at a time, so memory use is
    bounded by the longest line rather than the file size.
    """
    matches = []
    with open(path, 'rb') as f:
        for number, raw_line in enumerate(f, 1):
            if contains_non_target_script(raw_line.decode('utf-8', errors='replace')):
                matches.append(number)
    return matches


def scan_file(root_path: str, relative_path: str, options: ScanOptions
              ) -> Tuple[Optional[Finding], Optional[SkipRecord]]:
    """
    Scan one file.

    Returns:
        (finding or None, skip record or None).

    Raises:
        OSError: the file could not be stat'ed or read.
    """
    path = os.path.join(root_path, relative_path)

    if _file_size(path) > options.max_file_size:
        return None, SkipRecord(file_path=relative_path, reason=SkipReason.OVERSIZED)

    if is_binary(_read_sample(path)):
        return None, SkipRecord(file_path=relative_path, reason=SkipReason.BINARY)

    lines = scan_lines(path)
    if not lines:
        return None, None
    return Finding(file_path=relative_path, line_numbers=tuple(lines)), None


def scan_tree(root_path: str, options: Optional[ScanOptions] = None,
              branch: Optional[str] = None) -> TreeScan:
    """
    Scan every candidate file under ``root_path``.

    Files are processed concurrently in groups of ``options.file_batch_width``.
    Per-file results are returned as values and merged here, keyed by path.

    Args:
        root_path: Directory to scan.
        options: Scan configuration (defaults to ScanOptions()).
        branch: Optional branch name stamped on every finding.

    Returns:
        TreeScan with findings, skipped files and unreadable files.
    """
    options = options or ScanOptions()
    root_path = os.path.abspath(root_path)
    logger.info(f"[TREE] Inspecting files in: {root_path}")

    outcomes = run_batched(
        iter_candidate_files(root_path, options),
        lambda rel: scan_file(root_path, rel, options),
        batch_width=max(1, options.file_batch_width),
        thread_name_prefix="FileScan",
    )

    scan = TreeScan()
    for outcome in outcomes:
        if not outcome.ok:
            logger.warning(f"[TREE] Error reading file: {outcome.item}: {outcome.error}")
            scan.failures.append(UnitFailure(
                unit=outcome.item, kind=FailureKind.READ, message=str(outcome.error),
            ))
            continue

        finding, skip = outcome.value
        if skip is not None:
            scan.skipped.append(skip)
        if finding is not None:
            if branch is not None:
                finding = Finding(file_path=finding.file_path,
                                  line_numbers=finding.line_numbers, branch=branch)
            scan.findings[finding.file_path] = finding

    for path in scan.oversized:
        logger.warning(f"[TREE] Skipped large file (>{options.max_file_size} bytes): {path}")

    logger.info(
        f"[TREE] {len(outcomes)} files checked, {len(scan.findings)} with findings, "
        f"{len(scan.skipped)} skipped, {len(scan.failures)} unreadable"
    )
    return scan
