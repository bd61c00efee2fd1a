"""
Shared test fixtures for the inspection engine tests.
"""
import threading
from datetime import datetime, timezone

import pytest

from inspectors.errors import TransportError


HASH_A = 'a' * 40
HASH_B = 'b' * 40
HASH_C = 'c' * 40


class FakeTransport:
    """In-memory stand-in for GitTransport driven by canned git output."""

    def __init__(self, heads=None, dates=None, histories=None, fail_branches=(),
                 heads_error=None):
        self.heads = heads or []
        self.dates = dates or {}
        self.histories = histories or {}
        self.fail_branches = set(fail_branches)
        self.heads_error = heads_error
        self.checkouts = []
        self.clones = []
        self.history_calls = []
        self._lock = threading.Lock()

    def list_remote_heads(self, repo_path, remote='origin'):
        if self.heads_error:
            raise self.heads_error
        return iter(f"{'0' * 40}\trefs/heads/{name}" for name in self.heads)

    def last_commit_date(self, repo_path, branch):
        value = self.dates.get(branch, '')
        if isinstance(value, Exception):
            raise value
        return value

    def patch_history(self, repo_path, branch, since_iso):
        with self._lock:
            self.history_calls.append((branch, since_iso))
        if branch in self.fail_branches:
            raise TransportError(f"git log origin/{branch} exited 128: unknown revision")
        return iter(self.histories.get(branch, []))

    def checkout(self, repo_path, branch):
        if branch in self.fail_branches:
            raise TransportError(f"git checkout {branch} exited 1")
        with self._lock:
            self.checkouts.append(branch)

    def clone(self, url, dest):
        with self._lock:
            self.clones.append((url, dest))


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""
    return FakeTransport


@pytest.fixture
def now():
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def patch_stream():
    """Two commits touching three files; only some add Hangul or CJK lines."""
    return [
        HASH_A,
        '',
        'diff --git a/src/app.py b/src/app.py',
        'index 1111111..2222222 100644',
        '--- a/src/app.py',
        '+++ b/src/app.py',
        '@@ -1,2 +1,4 @@',
        ' import os',
        '+# 안녕하세요',
        '+# 两个',
        '+# 세 번째',
        'diff --git a/README.md b/README.md',
        '--- a/README.md',
        '+++ b/README.md',
        '@@ -1 +1,2 @@',
        ' Title',
        '+plain english only',
        HASH_B,
        '',
        'diff --git a/docs/guide.md b/docs/guide.md',
        '--- a/docs/guide.md',
        '+++ b/docs/guide.md',
        '@@ -0,0 +1 @@',
        '+中文 guide',
    ]


@pytest.fixture
def sample_tree(tmp_path):
    """A small checkout with text, binary, media and dependency files."""
    root = tmp_path / 'repo'
    root.mkdir()
    (root / 'src').mkdir()
    (root / 'src' / 'main.py').write_text(
        'print("hello")\n# 한국어 주석\n# 中文\nx = 1\n# 끝\n', encoding='utf-8'
    )
    (root / 'src' / 'clean.py').write_text('x = 1\ny = 2\n', encoding='utf-8')
    (root / '.hidden').write_text('secret 비밀\n', encoding='utf-8')
    (root / 'logo.png').write_bytes(b'\x89PNG\r\n\x1a\n')
    (root / 'blob.dat').write_bytes(b'\x00\x01\x02' + '한글'.encode('utf-8'))
    (root / 'node_modules' / 'pkg').mkdir(parents=True)
    (root / 'node_modules' / 'pkg' / 'index.js').write_text('// 한글\n', encoding='utf-8')
    (root / '.git').mkdir()
    (root / '.git' / 'config').write_text('[core] 한글\n', encoding='utf-8')
    return root
