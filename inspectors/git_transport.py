"""
Git subprocess transport.

Every invocation carries a time budget; an expired budget kills the process
and surfaces as GitTimeoutError so the enclosing unit fails in isolation.
"""
import logging
import subprocess
import threading
from typing import Iterator, List, Optional

from config import Config
from inspectors.errors import GitTimeoutError, TransportError

logger = logging.getLogger(__name__)

# Decode so every line can be re-encoded to its original bytes
STREAM_ENCODING = 'utf-8'
STREAM_ERRORS = 'surrogateescape'


def encode_line(line: str) -> bytes:
    """Recover the raw bytes of a line produced by GitTransport.stream()."""
    return line.encode(STREAM_ENCODING, STREAM_ERRORS)


class GitTransport:
    """Runs git commands with a bounded timeout."""

    def __init__(self, git_executable: str = 'git', timeout: Optional[int] = None):
        self.git_executable = git_executable
        self.timeout = timeout if timeout is not None else Config.GIT_TIMEOUT_SECONDS

    def _command(self, args: List[str]) -> List[str]:
        return [self.git_executable, '-c', 'core.quotepath=false'] + list(args)

    def run(self, args: List[str], cwd: Optional[str] = None) -> str:
        """
        Run a git command to completion and return its stdout.

        Raises:
            GitTimeoutError: the command exceeded the time budget.
            TransportError: non-zero exit or git could not be started.
        """
        command = self._command(args)
        logger.debug(f"[GIT] Running in '{cwd}': {' '.join(command)} (Timeout: {self.timeout}s)")
        try:
            proc = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding=STREAM_ENCODING,
                errors='replace',
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise GitTimeoutError(
                f"git {' '.join(args)} timed out after {self.timeout}s", command=command
            ) from e
        except OSError as e:
            raise TransportError(f"Could not start git: {e}", command=command) from e

        if proc.returncode != 0:
            stderr_snippet = (proc.stderr or '').strip()[:200]
            raise TransportError(
                f"git {' '.join(args)} exited {proc.returncode}: {stderr_snippet or 'no stderr'}",
                command=command,
                returncode=proc.returncode,
                stderr=proc.stderr or '',
            )
        return proc.stdout

    def stream(self, args: List[str], cwd: Optional[str] = None) -> Iterator[str]:
        """
        Yield a git command's stdout one line at a time (newline stripped).

        The whole output is never held in memory. A watchdog kills the
        process once the time budget is spent.

        Raises:
            GitTimeoutError: the command exceeded the time budget.
            TransportError: non-zero exit or git could not be started.
        """
        command = self._command(args)
        logger.debug(f"[GIT] Streaming in '{cwd}': {' '.join(command)} (Timeout: {self.timeout}s)")
        try:
            proc = subprocess.Popen(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding=STREAM_ENCODING,
                errors=STREAM_ERRORS,
            )
        except OSError as e:
            raise TransportError(f"Could not start git: {e}", command=command) from e

        stderr_chunks: List[str] = []

        def _drain_stderr():
            if proc.stderr is not None:
                stderr_chunks.append(proc.stderr.read())

        # stderr is read concurrently so a full pipe never blocks git
        stderr_reader = threading.Thread(target=_drain_stderr, daemon=True)
        stderr_reader.start()

        timed_out = threading.Event()

        def _expire():
            timed_out.set()
            proc.kill()

        watchdog = threading.Timer(self.timeout, _expire)
        watchdog.daemon = True
        watchdog.start()
        try:
            assert proc.stdout is not None
            for raw_line in proc.stdout:
                yield raw_line.rstrip('\n')
            returncode = proc.wait()
        finally:
            watchdog.cancel()
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            stderr_reader.join(timeout=5)
            for pipe in (proc.stdout, proc.stderr):
                if pipe is not None:
                    pipe.close()

        stderr = ''.join(stderr_chunks)
        if timed_out.is_set():
            raise GitTimeoutError(
                f"git {' '.join(args)} timed out after {self.timeout}s", command=command
            )
        if returncode != 0:
            raise TransportError(
                f"git {' '.join(args)} exited {returncode}: {stderr.strip()[:200] or 'no stderr'}",
                command=command,
                returncode=returncode,
                stderr=stderr,
            )

    def clone(self, url: str, dest: str) -> None:
        logger.info(f"[GIT] Cloning {url}")
        self.run(['clone', '--quiet', url, dest])

    def checkout(self, repo_path: str, branch: str) -> None:
        """Reset and clean the shared working directory, then check out ``branch``."""
        self.run(['reset', '--hard', '--quiet'], cwd=repo_path)
        self.run(['clean', '-fdx', '--quiet'], cwd=repo_path)
        self.run(['checkout', '--quiet', '-B', branch, f'origin/{branch}'], cwd=repo_path)

    def list_remote_heads(self, repo_path: str, remote: str = 'origin') -> Iterator[str]:
        """Stream ``<hash>\\trefs/heads/<name>`` lines for every remote branch."""
        return self.stream(['ls-remote', '--heads', remote], cwd=repo_path)

    def last_commit_date(self, repo_path: str, branch: str) -> str:
        """Return the raw ISO-8601 committer date of the branch tip."""
        return self.run(['log', '-1', '--format=%cI', f'origin/{branch}', '--'], cwd=repo_path).strip()

    def patch_history(self, repo_path: str, branch: str, since_iso: str) -> Iterator[str]:
        """Stream one bare hash line per commit followed by its unified diff."""
        return self.stream(
            [
                'log', f'origin/{branch}', f'--since={since_iso}',
                '--format=%H', '-p', '--no-color', '--no-ext-diff', '--',
            ],
            cwd=repo_path,
        )
