"""
Branch Discovery.

Lists remote branches of a cloned repository and classifies each one as
active when its tip commit falls inside the recency window.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from inspectors.errors import ConfigurationError, DateResolutionError, TransportError
from inspectors.git_transport import GitTransport
from reporting.models import Branch

logger = logging.getLogger(__name__)

HEADS_PREFIX = 'refs/heads/'


def parse_remote_heads(lines: Iterable[str]) -> List[str]:
    """
    Extract branch names from ``<hash>\\trefs/heads/<name>`` lines.

    Lines that do not match the format are ignored.
    """
    names = []
    for line in lines:
        _, sep, ref = line.strip().partition('\t')
        if not sep or not ref.startswith(HEADS_PREFIX):
            continue
        name = ref[len(HEADS_PREFIX):]
        if name and name not in names:
            names.append(name)
    return names


def parse_commit_date(value: Optional[str]) -> datetime:
    """
    Parse a git ISO-8601 date into an aware datetime.

    Raises:
        DateResolutionError: empty or malformed input.
    """
    if not value or not value.strip():
        raise DateResolutionError("empty history")
    normalized = value.strip()
    if normalized.endswith('Z'):
        normalized = normalized[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise DateResolutionError(f"malformed date {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_recent(last_commit_date: datetime, recency_threshold: timedelta, now: datetime) -> bool:
    """Strictly-greater test: a commit exactly at the cutoff is not recent."""
    return last_commit_date > now - recency_threshold


def list_branch_names(repo_path: str, transport: Optional[GitTransport] = None) -> List[str]:
    """
    List every remote branch name.

    Raises:
        ConfigurationError: the remote is unreachable or has no branches.
    """
    transport = transport or GitTransport()
    try:
        names = parse_remote_heads(transport.list_remote_heads(repo_path))
    except TransportError as e:
        raise ConfigurationError(f"Could not list remote branches of {repo_path}: {e}") from e
    if not names:
        raise ConfigurationError(f"No remote branches found in {repo_path}")
    return names


def _resolve_branch(repo_path: str, name: str, transport: GitTransport,
                    recency_threshold: timedelta, now: datetime) -> Branch:
    try:
        date = parse_commit_date(transport.last_commit_date(repo_path, name))
    except (DateResolutionError, TransportError) as e:
        logger.warning(f"[BRANCHES] Could not determine last commit date for {name}: {e}")
        return Branch(name=name, last_commit_date=None, active=False)
    return Branch(name=name, last_commit_date=date, active=is_recent(date, recency_threshold, now))


def list_active_branches(
    repo_path: str,
    recency_threshold: timedelta = timedelta(days=730),
    filter_enabled: bool = True,
    now: Optional[datetime] = None,
    transport: Optional[GitTransport] = None,
) -> List[Branch]:
    """
    Return the branches worth scanning.

    With filtering disabled every branch is returned as active. Otherwise the
    tip date of each branch is looked up concurrently (one thread per branch)
    and only branches with a tip newer than ``now - recency_threshold`` are
    returned. Undatable branches are dropped with a warning.

    Args:
        repo_path: Path of a clone with an ``origin`` remote.
        recency_threshold: Width of the recency window.
        filter_enabled: False keeps every branch.
        now: Reference instant (defaults to the current UTC time).
        transport: Git transport (defaults to a new GitTransport).

    Raises:
        ConfigurationError: branch listing failed or returned nothing.
    """
    transport = transport or GitTransport()
    names = list_branch_names(repo_path, transport)
    logger.info(f"[BRANCHES] Total branches found: {len(names)}")

    if not filter_enabled:
        return [Branch(name=name, active=True) for name in names]

    now = now or datetime.now(timezone.utc)
    with ThreadPoolExecutor(max_workers=len(names), thread_name_prefix="BranchDate") as pool:
        branches = list(pool.map(
            lambda name: _resolve_branch(repo_path, name, transport, recency_threshold, now),
            names,
        ))

    active = [b for b in branches if b.active]
    logger.info(
        f"[BRANCHES] Active branches (updated within {recency_threshold.days} days): {len(active)}"
    )
    return active
