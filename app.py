"""
Lingo Inspector - HTTP service

A Flask application that runs repository inspections in the background and
serves their results as JSON.
"""
import logging
import os
import shutil
import tempfile
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Dict, Optional

from flask import Flask, request, jsonify

from config import Config, ScanOptions
from inspectors.git_transport import GitTransport
from inspectors.projects import inspect_repository
from reporting import summarize_report
from utils import configure_logging

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)


# =============================================================================
# THREAD POOL EXECUTOR - Concurrent inspections with in-memory job state
# =============================================================================

JOB_STATUS_QUEUED = 'queued'
JOB_STATUS_PROCESSING = 'processing'
JOB_STATUS_DONE = 'done'
JOB_STATUS_FAILED = 'failed'

MAX_SCAN_WORKERS = Config.SCAN_WORKERS

_executor = None
_executor_lock = threading.Lock()

# job_id -> job dict; jobs only live as long as the process
_jobs: Dict[str, dict] = {}
_jobs_lock = threading.Lock()


def get_executor() -> ThreadPoolExecutor:
    """
    Get or create the thread pool executor.

    The executor is created lazily and reused across requests.
    """
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=MAX_SCAN_WORKERS,
                thread_name_prefix="InspectWorker"
            )
            logger.info(f"[EXECUTOR] Created ThreadPoolExecutor with {MAX_SCAN_WORKERS} workers")
        return _executor


def _update_job(job_id: str, **fields) -> None:
    with _jobs_lock:
        _jobs[job_id].update(fields)


def get_job(job_id: str) -> Optional[dict]:
    with _jobs_lock:
        job = _jobs.get(job_id)
        return dict(job) if job else None


def perform_background_inspection(job_id: str, path: Optional[str], url: Optional[str],
                                  options: ScanOptions) -> None:
    """
    Execute one inspection and record its outcome on the job.

    A URL is cloned into a temporary directory that is always removed.
    """
    logger.info(f"[WORKER] Starting inspection {job_id}")
    _update_job(job_id, status=JOB_STATUS_PROCESSING)
    start_time = time.time()
    clone_parent = None

    try:
        transport = GitTransport()
        target = path
        if url:
            clone_parent = tempfile.mkdtemp(prefix='lingo-')
            target = os.path.join(clone_parent, 'temp-clone')
            transport.clone(url, target)

        report = inspect_repository(target, options, transport=transport)
        _update_job(
            job_id,
            status=JOB_STATUS_DONE,
            summary=summarize_report(report),
            result=report.to_dict(),
            duration=round(time.time() - start_time, 2),
        )
        logger.info(f"[WORKER] Completed inspection {job_id} in {time.time() - start_time:.1f}s")
    except Exception as e:
        # Every failure must leave the job in a terminal state
        logger.error(f"[WORKER] Inspection {job_id} failed: {e}")
        _update_job(job_id, status=JOB_STATUS_FAILED, error=str(e))
    finally:
        if clone_parent:
            shutil.rmtree(clone_parent, ignore_errors=True)


def spawn_background_inspection(path: Optional[str], url: Optional[str], options: ScanOptions) -> str:
    """Register a queued job and submit it to the thread pool."""
    job_id = uuid.uuid4().hex
    with _jobs_lock:
        _jobs[job_id] = {
            'job_id': job_id,
            'status': JOB_STATUS_QUEUED,
            'path': path,
            'url': url,
        }
    get_executor().submit(perform_background_inspection, job_id, path, url, options)
    logger.info(f"[EXECUTOR] Submitted inspection {job_id}")
    return job_id


@app.route('/api/health')
def api_health():
    return jsonify({'status': 'ok', 'executor_active': _executor is not None})


@app.route('/api/inspect', methods=['POST'])
def api_inspect():
    """
    Start an inspection.

    Body:
        {"path": "/srv/repo"} or {"url": "git@host:group/app.git"}
        optional: "git" (bool, scan branch history), "filter" (bool),
        "recency_days" (int)

    Returns:
        202 with {"job_id": ...}
    """
    data = request.get_json(silent=True) or {}
    path = data.get('path')
    url = data.get('url')

    if not path and not url:
        return jsonify({'error': 'Missing required field: path or url'}), 400
    if path and url:
        return jsonify({'error': 'Provide either path or url, not both'}), 400
    if path and not os.path.isdir(path):
        return jsonify({'error': f'Path is not a directory: {path}'}), 400

    try:
        recency_days = int(data.get('recency_days', Config.RECENCY_THRESHOLD_DAYS))
    except (TypeError, ValueError):
        return jsonify({'error': 'recency_days must be an integer'}), 400

    options = ScanOptions(
        recency_threshold=timedelta(days=recency_days),
        filter_enabled=bool(data.get('filter', True)),
        scan_history=bool(data.get('git', False)),
    )
    job_id = spawn_background_inspection(path, url, options)
    return jsonify({'job_id': job_id, 'status': JOB_STATUS_QUEUED}), 202


@app.route('/api/inspect/<job_id>')
def api_inspect_status(job_id: str):
    job = get_job(job_id)
    if job is None:
        return jsonify({'error': 'Job not found'}), 404
    return jsonify(job)


@app.errorhandler(404)
def page_not_found(e):
    return jsonify({'error': 'Not found'}), 404


@app.errorhandler(500)
def internal_error(e):
    return jsonify({'error': 'Internal server error'}), 500


if __name__ == '__main__':
    configure_logging()
    app.run(debug=Config.DEBUG, host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
