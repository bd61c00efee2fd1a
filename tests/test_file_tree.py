"""Tests for the file tree scanner."""
import os

import pytest

from config import ScanOptions
from inspectors import file_tree
from inspectors.file_tree import is_excluded_path, iter_candidate_files, scan_lines, scan_tree
from reporting.models import FailureKind, SkipReason

TWO_GIB = 2 * 1024 * 1024 * 1024


class TestCandidateFiles:
    def test_hidden_included_and_excluded_pruned(self, sample_tree):
        files = set(iter_candidate_files(str(sample_tree)))
        assert files == {'src/main.py', 'src/clean.py', '.hidden', 'blob.dat'}

    def test_excluded_path_globs(self):
        options = ScanOptions()
        assert is_excluded_path('node_modules', options) is True
        assert is_excluded_path('a/b/node_modules/x.js', options) is True
        assert is_excluded_path('.git/config', options) is True
        assert is_excluded_path('src/git/config', options) is False
        assert is_excluded_path('my_node_modules/x.js', options) is False

    def test_lockfiles_excluded(self, tmp_path):
        (tmp_path / 'package-lock.json').write_text('{"한": 1}', encoding='utf-8')
        (tmp_path / 'yarn.lock').write_text('한', encoding='utf-8')
        (tmp_path / 'build.log').write_text('한', encoding='utf-8')
        assert list(iter_candidate_files(str(tmp_path))) == []


class TestScanLines:
    def test_every_matching_line_reported(self, tmp_path):
        path = tmp_path / 'f.txt'
        path.write_text('a\n한\nb\n中\n가나\n', encoding='utf-8')
        assert scan_lines(str(path)) == [2, 4, 5]

    def test_crlf_and_missing_trailing_newline(self, tmp_path):
        path = tmp_path / 'f.txt'
        path.write_bytes('one\r\n두\r\nthree\r\n넷'.encode('utf-8'))
        assert scan_lines(str(path)) == [2, 4]

    def test_invalid_utf8_does_not_crash(self, tmp_path):
        path = tmp_path / 'f.txt'
        path.write_bytes(b'\xff\xfe broken\n' + '한'.encode('utf-8') + b'\n')
        assert scan_lines(str(path)) == [2]


class TestScanTree:
    def test_findings_and_skips(self, sample_tree):
        scan = scan_tree(str(sample_tree))
        assert set(scan.findings) == {'src/main.py', '.hidden'}
        assert scan.findings['src/main.py'].line_numbers == (2, 3, 5)
        assert scan.findings['.hidden'].line_numbers == (1,)
        assert [(s.file_path, s.reason) for s in scan.skipped] == [('blob.dat', SkipReason.BINARY)]
        assert scan.failures == []

    def test_line_presence_matches_classifier(self, tmp_path):
        lines = ['plain', '한글', 'mixed 中 text', '', 'ascii only', '끝']
        (tmp_path / 'f.md').write_text('\n'.join(lines), encoding='utf-8')
        scan = scan_tree(str(tmp_path))
        assert scan.findings['f.md'].line_numbers == (2, 3, 6)

    def test_idempotent(self, sample_tree):
        assert scan_tree(str(sample_tree)).findings == scan_tree(str(sample_tree)).findings

    def test_branch_stamped(self, sample_tree):
        scan = scan_tree(str(sample_tree), branch='dev')
        assert {f.branch for f in scan.findings.values()} == {'dev'}

    def test_oversized_file_skipped_and_never_read(self, tmp_path, monkeypatch):
        (tmp_path / 'huge.txt').write_text('한글\n', encoding='utf-8')
        monkeypatch.setattr(file_tree, '_file_size', lambda path: TWO_GIB + 1)

        def _fail(*args, **kwargs):
            raise AssertionError('oversized file must not be read')

        monkeypatch.setattr(file_tree, '_read_sample', _fail)
        monkeypatch.setattr(file_tree, 'scan_lines', _fail)

        scan = scan_tree(str(tmp_path))
        assert scan.findings == {}
        assert [(s.file_path, s.reason) for s in scan.skipped] == [('huge.txt', SkipReason.OVERSIZED)]
        assert scan.oversized == ['huge.txt']

    def test_exactly_at_ceiling_is_scanned(self, tmp_path, monkeypatch):
        (tmp_path / 'edge.txt').write_text('한글\n', encoding='utf-8')
        monkeypatch.setattr(file_tree, '_file_size', lambda path: TWO_GIB)
        scan = scan_tree(str(tmp_path))
        assert 'edge.txt' in scan.findings

    def test_read_failure_isolated(self, sample_tree, monkeypatch):
        real_scan_lines = file_tree.scan_lines

        def _flaky(path):
            if path.endswith('main.py'):
                raise PermissionError('denied')
            return real_scan_lines(path)

        monkeypatch.setattr(file_tree, 'scan_lines', _flaky)
        scan = scan_tree(str(sample_tree))
        assert set(scan.findings) == {'.hidden'}
        assert len(scan.failures) == 1
        assert scan.failures[0].unit == 'src/main.py'
        assert scan.failures[0].kind is FailureKind.READ

    def test_file_level_batching(self, tmp_path):
        for i in range(25):
            (tmp_path / f'f{i}.txt').write_text('한\n' if i % 2 else 'a\n', encoding='utf-8')
        scan = scan_tree(str(tmp_path), ScanOptions(file_batch_width=4))
        assert len(scan.findings) == 12

    def test_candidates_consumed_lazily(self, tmp_path, monkeypatch):
        for i in range(6):
            (tmp_path / f'f{i}.txt').write_text('한\n', encoding='utf-8')
        walk = file_tree.iter_candidate_files
        pulled = []

        def tracking_walk(root, options):
            for rel in walk(root, options):
                pulled.append(rel)
                yield rel

        reads_seen = []
        real_scan_file = file_tree.scan_file

        def tracking_scan_file(root, rel, options):
            reads_seen.append(len(pulled))
            return real_scan_file(root, rel, options)

        monkeypatch.setattr(file_tree, 'iter_candidate_files', tracking_walk)
        monkeypatch.setattr(file_tree, 'scan_file', tracking_scan_file)
        scan = scan_tree(str(tmp_path), ScanOptions(file_batch_width=2))

        assert len(scan.findings) == 6
        assert max(reads_seen[:2]) == 2

    def test_empty_directory(self, tmp_path):
        scan = scan_tree(str(tmp_path))
        assert scan.findings == {}
        assert scan.skipped == []
