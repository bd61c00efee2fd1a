"""
Inspectors package: branch discovery, tree and history scanning.
"""
from .branches import list_active_branches
from .diff_stream import scan_branch_history
from .file_tree import scan_tree

__all__ = ['list_active_branches', 'scan_branch_history', 'scan_tree']
