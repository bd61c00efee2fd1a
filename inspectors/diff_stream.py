"""
Diff Stream Scanner.

Walks the patch history of one branch as a finite-state machine over its
lines, never materializing a file tree. The stream is the output of
``git log --format=%H -p``: a bare commit hash line per commit, followed by
that commit's unified diff.

Only added lines are inspected, and each file is reported at most once per
commit: the history pass flags where non-target script was introduced,
while exhaustive per-line reporting belongs to the tree scan.
"""
import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Tuple

from config import ScanOptions
from inspectors.classifier import contains_non_target_script, is_binary
from inspectors.file_tree import is_excluded_path
from inspectors.git_transport import GitTransport, encode_line
from reporting.models import Commit, Finding

logger = logging.getLogger(__name__)

# SHA-1 or SHA-256 object names
COMMIT_HASH_RE = re.compile(r'^(?:[0-9a-f]{40}|[0-9a-f]{64})$')
DIFF_HEADER_RE = re.compile(r'^diff --git a/(?P<source>.+) b/(?P<target>.+)$')


@dataclass(frozen=True)
class DiffState:
    """
    Parser context: the commit being read and the file still worth checking.

    ``commit is None`` is the AwaitCommit state; anything else is AwaitFile.
    ``file`` is cleared once a file is reported, excluded or found binary.
    """
    commit: Optional[Commit] = None
    file: Optional[str] = None

    @property
    def awaiting_commit(self) -> bool:
        return self.commit is None


INITIAL_STATE = DiffState()


def is_commit_hash(line: str) -> bool:
    return COMMIT_HASH_RE.match(line) is not None


def parse_diff_target(line: str) -> Optional[str]:
    """Return the ``b/`` path of a ``diff --git`` header, or None."""
    match = DIFF_HEADER_RE.match(line)
    if not match:
        return None
    return match.group('target')


def step(state: DiffState, line: str, options: Optional[ScanOptions] = None,
         branch: Optional[str] = None) -> Tuple[DiffState, Optional[Finding]]:
    """
    Advance the parser by one line.

    Returns:
        (next state, finding emitted by this line or None).
    """
    options = options or ScanOptions()

    if is_commit_hash(line):
        return DiffState(commit=Commit(hash=line)), None

    if state.awaiting_commit:
        return state, None

    if line.startswith('diff --git '):
        target = parse_diff_target(line)
        if target is None or options.is_excluded_extension(target) or is_excluded_path(target, options):
            return replace(state, file=None), None
        return replace(state, file=target), None

    if state.file is None:
        return state, None

    if line.startswith('+') and not line.startswith('+++'):
        if is_binary(encode_line(line)):
            return replace(state, file=None), None
        if contains_non_target_script(line):
            finding = Finding(file_path=state.file, line_numbers=(), commit=state.commit, branch=branch)
            return replace(state, file=None), finding

    return state, None


def fold_patch_stream(lines: Iterable[str], options: Optional[ScanOptions] = None,
                      branch: Optional[str] = None) -> Iterator[Finding]:
    """Thread a DiffState through ``lines``, yielding findings as they appear."""
    options = options or ScanOptions()
    state = INITIAL_STATE
    for line in lines:
        state, finding = step(state, line, options, branch)
        if finding is not None:
            yield finding


def scan_branch_history(
    repo_path: str,
    branch_name: str,
    since: timedelta = timedelta(days=730),
    options: Optional[ScanOptions] = None,
    transport: Optional[GitTransport] = None,
    now: Optional[datetime] = None,
) -> List[Finding]:
    """
    Scan the recent patch history of one branch.

    Args:
        repo_path: Clone with an ``origin`` remote.
        branch_name: Remote branch name (without ``origin/``).
        since: Only commits newer than ``now - since`` are streamed.
        options: Scan configuration.
        transport: Git transport.
        now: Reference instant (defaults to the current UTC time).

    Returns:
        One Finding per offending file per commit.

    Raises:
        TransportError: git failed or timed out; the branch is abandoned.
    """
    options = options or ScanOptions()
    transport = transport or GitTransport()
    now = now or datetime.now(timezone.utc)
    since_iso = (now - since).isoformat()

    logger.info(f"[HISTORY] Inspecting history of {branch_name} since {since_iso}")
    lines = transport.patch_history(repo_path, branch_name, since_iso)
    findings = list(fold_patch_stream(lines, options, branch=branch_name))
    logger.info(f"[HISTORY] {branch_name}: {len(findings)} file introductions found")
    return findings
