"""Tests for the result aggregator."""
from conftest import HASH_A
from inspectors.diff_stream import fold_patch_stream
from reporting.aggregator import (
    compress_line_ranges,
    dedupe_line_numbers,
    group_history_findings,
    group_tree_findings,
    merge_scan_results,
)
from reporting.models import Commit, Finding


class TestCompressLineRanges:
    def test_mixed(self):
        assert compress_line_ranges([3, 4, 5, 9]) == '3-5, 9'

    def test_single(self):
        assert compress_line_ranges([1]) == '1'

    def test_one_run(self):
        assert compress_line_ranges([1, 2, 3]) == '1-3'

    def test_empty(self):
        assert compress_line_ranges([]) == ''

    def test_unsorted_with_duplicates(self):
        assert compress_line_ranges([9, 3, 4, 4, 5, 11, 12]) == '3-5, 9, 11-12'

    def test_all_singletons(self):
        assert compress_line_ranges([2, 4, 6]) == '2, 4, 6'


class TestDedupe:
    def test_set_semantics(self):
        assert dedupe_line_numbers([5, 1, 5, 3, 1]) == (1, 3, 5)


class TestMergeScanResults:
    def test_union_by_path(self):
        first = {'a.py': Finding('a.py', (1, 2))}
        second = {'a.py': Finding('a.py', (2, 7)), 'b.py': Finding('b.py', (4,))}
        merged = merge_scan_results(first, second)
        assert merged['a.py'].line_numbers == (1, 2, 7)
        assert merged['b.py'].line_numbers == (4,)

    def test_order_independent(self):
        first = {'a.py': Finding('a.py', (9,))}
        second = {'a.py': Finding('a.py', (1,))}
        assert merge_scan_results(first, second) == merge_scan_results(second, first)


class TestGroupHistoryFindings:
    def test_groups_by_branch_then_commit(self):
        c1 = Commit('1' * 40)
        c2 = Commit('2' * 40)
        findings = [
            Finding('src/a.py', commit=c1, branch='main'),
            Finding('docs/b.md', commit=c1, branch='main'),
            Finding('src/a.py', commit=c2, branch='dev'),
        ]
        grouped = group_history_findings(findings)
        assert grouped == {
            'dev': {'2222222': ['a.py']},
            'main': {'1111111': ['b.md', 'a.py']},
        }

    def test_arrival_order_irrelevant(self):
        c1 = Commit('1' * 40)
        findings = [
            Finding('x/z.py', commit=c1, branch='main'),
            Finding('x/a.py', commit=c1, branch='main'),
        ]
        assert group_history_findings(findings) == group_history_findings(list(reversed(findings)))

    def test_same_basename_in_one_commit_listed_per_file(self):
        c1 = Commit('1' * 40)
        findings = [
            Finding('web/__init__.py', commit=c1, branch='main'),
            Finding('api/__init__.py', commit=c1, branch='main'),
        ]
        assert group_history_findings(findings) == {
            'main': {'1111111': ['__init__.py', '__init__.py']},
        }

    def test_folded_stream_keeps_both_same_basename_files(self):
        stream = [
            HASH_A,
            'diff --git a/api/__init__.py b/api/__init__.py',
            '+# 한글',
            'diff --git a/web/__init__.py b/web/__init__.py',
            '+# 中文',
        ]
        findings = list(fold_patch_stream(stream, branch='main'))
        grouped = group_history_findings(findings)
        assert len(grouped['main'][HASH_A[:7]]) == 2


class TestGroupTreeFindings:
    def test_compressed_basenames(self):
        grouped = group_tree_findings({
            'main': {'src/app.py': Finding('src/app.py', (1, 2, 3, 8))},
        })
        assert grouped == {'main': [{'file': 'app.py', 'lines': '1-3, 8'}]}

    def test_drops_empty_files_and_branches(self):
        grouped = group_tree_findings({
            'main': {'src/app.py': Finding('src/app.py', ())},
            'dev': {'x.py': Finding('x.py', (4,)), 'y.py': Finding('y.py', ())},
        })
        assert grouped == {'dev': [{'file': 'x.py', 'lines': '4'}]}
