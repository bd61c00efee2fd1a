"""Tests for the git subprocess transport, using a scripted fake git."""
import stat
import sys

import pytest

from inspectors.errors import GitTimeoutError, TransportError
from inspectors.git_transport import GitTransport, encode_line

pytestmark = pytest.mark.skipif(sys.platform == 'win32', reason='uses a POSIX shell script')


def _fake_git(tmp_path, body):
    script = tmp_path / 'fake-git'
    script.write_text('#!/bin/sh\n' + body + '\n', encoding='utf-8')
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return str(script)


class TestRun:
    def test_stdout_returned(self, tmp_path):
        git = _fake_git(tmp_path, 'echo "2025-01-01T00:00:00+00:00"')
        assert GitTransport(git, timeout=5).run(['log']).strip() == '2025-01-01T00:00:00+00:00'

    def test_non_zero_exit(self, tmp_path):
        git = _fake_git(tmp_path, 'echo "fatal: bad revision" >&2; exit 128')
        with pytest.raises(TransportError) as exc_info:
            GitTransport(git, timeout=5).run(['log'])
        assert exc_info.value.returncode == 128
        assert 'bad revision' in str(exc_info.value)

    def test_timeout(self, tmp_path):
        git = _fake_git(tmp_path, 'exec sleep 5')
        with pytest.raises(GitTimeoutError):
            GitTransport(git, timeout=1).run(['log'])

    def test_missing_executable(self, tmp_path):
        with pytest.raises(TransportError):
            GitTransport(str(tmp_path / 'no-such-git'), timeout=5).run(['status'])


class TestStream:
    def test_lines_yielded(self, tmp_path):
        git = _fake_git(tmp_path, 'printf "one\\n두\\nthree"')
        assert list(GitTransport(git, timeout=5).stream(['log'])) == ['one', '두', 'three']

    def test_invalid_utf8_round_trips(self, tmp_path):
        git = _fake_git(tmp_path, "printf '+\\377x\\n'")
        lines = list(GitTransport(git, timeout=5).stream(['log']))
        assert encode_line(lines[0]) == b'+\xffx'

    def test_non_zero_exit_after_output(self, tmp_path):
        git = _fake_git(tmp_path, 'echo partial; echo "fatal: oops" >&2; exit 1')
        stream = GitTransport(git, timeout=5).stream(['log'])
        assert next(stream) == 'partial'
        with pytest.raises(TransportError):
            list(stream)

    def test_large_stderr_does_not_block(self, tmp_path):
        git = _fake_git(tmp_path, "head -c 200000 /dev/zero | tr '\\000' w >&2; echo line1")
        assert list(GitTransport(git, timeout=10).stream(['log'])) == ['line1']

    def test_stderr_reported_on_failure(self, tmp_path):
        git = _fake_git(tmp_path, 'echo "fatal: bad object" >&2; exit 128')
        with pytest.raises(TransportError) as exc_info:
            list(GitTransport(git, timeout=5).stream(['log']))
        assert 'bad object' in str(exc_info.value)
        assert exc_info.value.returncode == 128

    def test_timeout_kills_process(self, tmp_path):
        git = _fake_git(tmp_path, 'echo start; exec sleep 5')
        with pytest.raises(GitTimeoutError):
            list(GitTransport(git, timeout=1).stream(['log']))


class TestCommands:
    def test_global_options_prefixed(self, tmp_path):
        git = _fake_git(tmp_path, 'echo "$@"')
        out = GitTransport(git, timeout=5).run(['status'])
        assert out.strip() == '-c core.quotepath=false status'

    def test_patch_history_arguments(self, tmp_path):
        git = _fake_git(tmp_path, 'echo "$@"')
        line = list(GitTransport(git, timeout=5).patch_history(str(tmp_path), 'dev', '2024-01-01T00:00:00+00:00'))[0]
        assert 'log origin/dev --since=2024-01-01T00:00:00+00:00 --format=%H -p' in line
