"""
Reporting: result values, aggregation and rendering.

Public API: summarize_report(report) -> dict
"""
from reporting.models import RepositoryReport


def summarize_report(report: RepositoryReport) -> dict:
    """Headline numbers for one repository report.

    Counts files with findings in the working tree, commits in the history
    that introduced non-target script, skipped files and failed units.
    """
    commits = {
        (f.branch, f.commit.hash) for f in report.history_findings if f.commit is not None
    }
    return {
        'repo_path': report.repo_path,
        'branches_scanned': len(report.branches),
        'files_with_findings': len(report.tree.findings) if report.tree else 0,
        'offending_commits': len(commits),
        'skipped_files': len(report.skipped),
        'failed_units': len(report.failures),
        'clean': not report.has_findings,
    }
