"""
Utility functions for the Lingo Inspector.

Provides the GitLab request wrapper and logging setup shared by the CLI and
the HTTP service.
"""
import logging
import random
import sys
import time
from typing import Optional

import requests

from config import Config

logger = logging.getLogger(__name__)

# Reusable HTTP session for connection pooling (keep-alive)
_session = requests.Session()

MAX_RETRIES = 3
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def configure_logging(level: Optional[str] = None) -> None:
    """Send log records to stderr at ``level`` (defaults to Config.LOG_LEVEL)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO))
    if not any(getattr(h, '_lingo_handler', False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s'))
        handler._lingo_handler = True
        root.addHandler(handler)


def get_gitlab_headers(token: Optional[str] = None) -> dict:
    """Headers for GitLab API requests; falls back to Config.GITLAB_ACCESS_TOKEN."""
    headers = {
        'Accept': 'application/json',
        'User-Agent': 'Lingo-Inspector/1.0',
    }
    token = token or Config.GITLAB_ACCESS_TOKEN
    if token:
        headers['PRIVATE-TOKEN'] = token
    return headers


def _backoff(retry_count: int) -> float:
    return min(2 ** retry_count, 30) + random.uniform(0, 1)


def make_gitlab_request(url: str, params: Optional[dict] = None, token: Optional[str] = None,
                        timeout: Optional[int] = None, _retry_count: int = 0) -> requests.Response:
    """
    GitLab API GET with retries.

    - Connection errors and timeouts are retried with exponential backoff.
    - 429 responses wait for ``Retry-After`` (or backoff) and retry.
    - 5xx responses are retried with exponential backoff.

    Args:
        url: GitLab API URL
        params: Query parameters
        token: Access token (defaults to Config.GITLAB_ACCESS_TOKEN)
        timeout: Request timeout in seconds
        _retry_count: Internal retry counter

    Returns:
        requests.Response (the last one, if retries ran out)

    Raises:
        requests.RequestException: connection failures after all retries.
    """
    try:
        response = _session.get(
            url,
            headers=get_gitlab_headers(token),
            params=params,
            timeout=timeout or Config.GITLAB_REQUEST_TIMEOUT,
        )
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout,
            requests.exceptions.ChunkedEncodingError) as e:
        if _retry_count < MAX_RETRIES:
            backoff = _backoff(_retry_count)
            logger.warning(f"[GITLAB] Connection error, retrying in {backoff:.1f}s "
                           f"(attempt {_retry_count + 1}/{MAX_RETRIES}): {e}")
            time.sleep(backoff)
            return make_gitlab_request(url, params, token, timeout, _retry_count + 1)
        raise

    if response.status_code in RETRYABLE_STATUS_CODES and _retry_count < MAX_RETRIES:
        sleep_for = _backoff(_retry_count)
        if response.status_code == 429:
            try:
                sleep_for = max(float(response.headers.get('Retry-After', sleep_for)), 0)
            except ValueError:
                pass
        logger.warning(f"[GITLAB] {response.status_code} from {url}, retrying in {sleep_for:.1f}s "
                       f"(attempt {_retry_count + 1}/{MAX_RETRIES})")
        time.sleep(sleep_for)
        return make_gitlab_request(url, params, token, timeout, _retry_count + 1)

    return response


def project_name_from_url(url: str) -> str:
    """'git@host:group/app.git' -> 'app'."""
    tail = url.rstrip('/').split('/')[-1].split(':')[-1]
    if tail.endswith('.git'):
        tail = tail[:-len('.git')]
    return tail or 'unknown-project'
