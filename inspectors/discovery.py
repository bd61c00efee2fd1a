"""
GitLab Project Discovery Module.

Walks a GitLab group hierarchy and collects the SSH clone URL of every
project. The walk owns an explicit queue and a visited-ID set, so memory is
bounded by the frontier and a failed group does not stop the walk.
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from config import Config
from inspectors.errors import DiscoveryError
from reporting.models import FailureKind, UnitFailure
from utils import make_gitlab_request

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Project URLs found plus the groups that could not be listed."""
    urls: List[str] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)
    visited: List[str] = field(default_factory=list)


def _get_paginated(url: str, token: Optional[str], params: Optional[dict] = None) -> List[Dict[str, Any]]:
    """
    Fetch every page of a GitLab list endpoint.

    Raises:
        DiscoveryError: a page returned a non-200 status or bad JSON.
    """
    items: List[Dict[str, Any]] = []
    per_page = Config.GITLAB_PER_PAGE
    page = 1

    while page <= Config.GITLAB_MAX_PAGES:
        page_params = dict(params or {})
        page_params.update({'per_page': per_page, 'page': page})
        try:
            response = make_gitlab_request(url, params=page_params, token=token)
        except requests.RequestException as e:
            raise DiscoveryError(f"Request to {url} failed: {e}") from e

        if response.status_code != 200:
            raise DiscoveryError(f"Error: {response.status_code} {response.reason or 'Request Failed'} ({url})")
        try:
            batch = response.json()
        except ValueError as e:
            raise DiscoveryError(f"Invalid JSON from {url}") from e

        if not batch:
            break
        items.extend(batch)
        if len(batch) < per_page:
            break
        page += 1
    else:
        logger.warning(f"[GITLAB] Reached maximum page limit for {url}")

    return items


def fetch_group_children(group_id: str, base_url: str, token: Optional[str]):
    """
    Return (subgroup ids, project ssh urls) of one group.

    Raises:
        DiscoveryError: either listing failed.
    """
    subgroups = _get_paginated(f"{base_url}/groups/{group_id}/subgroups", token)
    projects = _get_paginated(
        f"{base_url}/groups/{group_id}/projects", token, params={'include_subgroups': 'false'}
    )
    subgroup_ids = [str(g['id']) for g in subgroups if g.get('id') is not None]
    urls = [p['ssh_url_to_repo'] for p in projects if p.get('ssh_url_to_repo')]
    return subgroup_ids, urls


def fetch_all_project_urls(start_group_id: str, base_url: Optional[str] = None,
                           token: Optional[str] = None) -> DiscoveryResult:
    """
    Breadth-first walk from ``start_group_id`` over every subgroup.

    Args:
        start_group_id: Root group of the walk.
        base_url: GitLab API base, e.g. https://gitlab.example.com/api/v4
        token: Access token.

    Returns:
        DiscoveryResult with unique project URLs in discovery order.
    """
    base_url = (base_url or Config.GITLAB_BASE_URL or '').rstrip('/')
    token = token or Config.GITLAB_ACCESS_TOKEN

    result = DiscoveryResult()
    queue = deque([str(start_group_id)])
    visited = set()
    seen_urls = set()

    while queue:
        group_id = queue.popleft()
        if group_id in visited:
            continue
        visited.add(group_id)
        result.visited.append(group_id)

        try:
            subgroup_ids, urls = fetch_group_children(group_id, base_url, token)
        except DiscoveryError as e:
            logger.warning(f"[GITLAB] Error fetching group {group_id}: {e}")
            result.failures.append(UnitFailure(unit=group_id, kind=FailureKind.GROUP, message=str(e)))
            continue

        queue.extend(g for g in subgroup_ids if g not in visited)
        for url in urls:
            if url not in seen_urls:
                seen_urls.add(url)
                result.urls.append(url)

    logger.info(f"[GITLAB] Total Projects Found: {len(result.urls)}")
    return result
