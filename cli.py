"""
Lingo Inspector command line.

    python cli.py inspect --path . --git
    python cli.py inspect --url git@gitlab.example.com:team/app.git --git --delete
    python cli.py inspect-urls --output-dir ./results

Exit status: 0 clean, 1 non-English content found, 2 configuration error.
"""
import argparse
import logging
import os
import shutil
import sys
import tempfile
from typing import List, Optional

from config import Config, ScanOptions
from inspectors.discovery import fetch_all_project_urls
from inspectors.errors import ConfigurationError, TransportError
from inspectors.git_transport import GitTransport
from inspectors.projects import inspect_projects, inspect_repository
from reporting.output_formatter import (
    format_repository_report,
    report_to_json,
    save_batch_results,
    save_failed_projects,
)
from utils import configure_logging

logger = logging.getLogger(__name__)

EXIT_CLEAN = 0
EXIT_FINDINGS = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lingo-inspector',
        description='Inspect files and Git history for non-English content.',
    )
    parser.add_argument('--log-level', default=None, help='DEBUG, INFO, WARNING (default: LOG_LEVEL env)')
    sub = parser.add_subparsers(dest='command', required=True)

    inspect = sub.add_parser('inspect', help='Inspect one local path or repository URL.')
    inspect.add_argument('-p', '--path', default='.', help='Local path to project')
    inspect.add_argument('-u', '--url', default=None, help='Git repository URL')
    inspect.add_argument('-g', '--git', action='store_true', help='Inspect Git history')
    inspect.add_argument('--no-filter', action='store_true',
                         help='Do not filter branches older than the recency window')
    inspect.add_argument('-d', '--delete', action='store_true', help='Clean up the temporary clone')
    inspect.add_argument('--checkout', action='store_true',
                         help='Scan branches by checking each one out (one branch at a time)')
    inspect.add_argument('--json', action='store_true', help='Print the report as JSON')

    urls = sub.add_parser('inspect-urls', help='Inspect every project of a GitLab group hierarchy.')
    urls.add_argument('--no-filter', action='store_true',
                      help='Do not filter branches updated over the recency window ago')
    urls.add_argument('--output-dir', default=None, help='Directory for JSON results')
    urls.add_argument('--batch-width', type=int, default=None, help='Projects inspected at once')
    return parser


def run_inspect(args: argparse.Namespace) -> int:
    options = ScanOptions(
        filter_enabled=not args.no_filter,
        scan_history=args.git,
        checkout_mode=args.checkout,
    )
    transport = GitTransport()
    target_path = args.path
    clone_parent = None

    if args.url:
        clone_parent = tempfile.mkdtemp(prefix='lingo-')
        target_path = os.path.join(clone_parent, 'temp-clone')
        print(f"Cloning repository from {args.url}")
        try:
            transport.clone(args.url, target_path)
        except TransportError as e:
            print(f"Could not clone {args.url}: {e}", file=sys.stderr)
            shutil.rmtree(clone_parent, ignore_errors=True)
            return EXIT_CONFIG

    try:
        report = inspect_repository(target_path, options, transport=transport)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG
    finally:
        if clone_parent and args.delete:
            print('Cleaning up temporary files...')
            shutil.rmtree(clone_parent, ignore_errors=True)

    if clone_parent and not args.delete:
        print(f"Clone kept at: {target_path}")

    if args.json:
        print(report_to_json(report))
    else:
        print(format_repository_report(report))
    return EXIT_FINDINGS if report.has_findings else EXIT_CLEAN


def run_inspect_urls(args: argparse.Namespace) -> int:
    try:
        token, base_url, group_id = Config.require_gitlab_settings()
    except ConfigurationError as e:
        print(str(e), file=sys.stderr)
        return EXIT_CONFIG

    output_dir = args.output_dir or Config.OUTPUT_DIR
    os.makedirs(output_dir, exist_ok=True)

    print('Fetching all project URLs...')
    discovery = fetch_all_project_urls(group_id, base_url=base_url, token=token)
    print(f"Total Projects Found: {len(discovery.urls)}")
    for failure in discovery.failures:
        print(f"   Could not list group {failure.unit}: {failure.message}", file=sys.stderr)

    options = ScanOptions(filter_enabled=not args.no_filter)
    if args.batch_width:
        options = ScanOptions(filter_enabled=not args.no_filter, batch_width=args.batch_width)

    def _save(index, reports):
        print(f"Processing batch {index + 1} complete")
        save_batch_results(reports, index, output_dir)

    run = inspect_projects(discovery.urls, options, on_batch=_save)
    if run.failed:
        save_failed_projects(run.reports, output_dir)

    print('All inspections complete!')
    found = any(r.report is not None and r.report.has_findings for r in run.successful)
    return EXIT_FINDINGS if found else EXIT_CLEAN


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    if args.command == 'inspect':
        return run_inspect(args)
    return run_inspect_urls(args)


if __name__ == '__main__':
    sys.exit(main())
