"""
Configuration settings for the Lingo Inspector.

Audits repositories for lines containing Hangul or CJK ideographs in both
the working tree and the recent commit history of every active branch.
"""
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import FrozenSet, Tuple

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application configuration for the Lingo Inspector."""

    # Flask
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', 'false').lower() == 'true'

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # ============================================================
    # GITLAB DISCOVERY
    # ============================================================
    #
    # Fleet mode walks a GitLab group hierarchy starting from
    # GITLAB_START_GROUP_ID and collects every project's SSH clone URL.
    #
    # Setup:
    #   GITLAB_ACCESS_TOKEN=glpat-...          (read_api scope)
    #   GITLAB_BASE_URL=https://gitlab.example.com/api/v4
    #   GITLAB_START_GROUP_ID=42
    #
    # ============================================================

    GITLAB_ACCESS_TOKEN = os.getenv('GITLAB_ACCESS_TOKEN')
    GITLAB_BASE_URL = os.getenv('GITLAB_BASE_URL')
    GITLAB_START_GROUP_ID = os.getenv('GITLAB_START_GROUP_ID')

    GITLAB_PER_PAGE = 100
    GITLAB_MAX_PAGES = 50       # Safety limit per group listing
    GITLAB_REQUEST_TIMEOUT = 30

    @staticmethod
    def require_gitlab_settings() -> Tuple[str, str, str]:
        """
        Return (token, base_url, start_group_id) read from the environment.

        Raises:
            ConfigurationError: if any of the three variables is missing.
        """
        from inspectors.errors import ConfigurationError

        token = os.getenv('GITLAB_ACCESS_TOKEN') or Config.GITLAB_ACCESS_TOKEN
        base_url = os.getenv('GITLAB_BASE_URL') or Config.GITLAB_BASE_URL
        group_id = os.getenv('GITLAB_START_GROUP_ID') or Config.GITLAB_START_GROUP_ID

        missing = [
            name for name, value in (
                ('GITLAB_ACCESS_TOKEN', token),
                ('GITLAB_BASE_URL', base_url),
                ('GITLAB_START_GROUP_ID', group_id),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them in the .env file."
            )
        return token, base_url.rstrip('/'), str(group_id)

    # ============================================================
    # SCAN CONFIGURATION
    # ============================================================

    RECENCY_THRESHOLD_DAYS = int(os.getenv('RECENCY_THRESHOLD_DAYS', 730))  # 2 years
    BATCH_WIDTH = int(os.getenv('BATCH_WIDTH', 10))            # Branches / projects in flight
    FILE_BATCH_WIDTH = int(os.getenv('FILE_BATCH_WIDTH', 64))  # Files in flight per tree scan
    MAX_FILE_SIZE = int(os.getenv('MAX_FILE_SIZE', 2 * 1024 * 1024 * 1024))  # 2 GiB
    BINARY_SAMPLE_SIZE = 8192
    GIT_TIMEOUT_SECONDS = int(os.getenv('GIT_TIMEOUT_SECONDS', 600))

    # Background scans for the HTTP service
    SCAN_WORKERS = int(os.getenv('SCAN_WORKERS', 4))

    # Where the CLI writes per-batch JSON results
    OUTPUT_DIR = os.getenv('OUTPUT_DIR', os.getcwd())

    # Media, archives, lockfiles, logs and compiled artifacts are never read
    EXCLUDED_EXTENSIONS = frozenset({
        # images
        '.png', '.jpg', '.jpeg', '.gif', '.svg', '.webp', '.bmp', '.tiff', '.ico',
        # audio
        '.mp3', '.wav', '.ogg', '.flac', '.aac', '.m4a',
        # video
        '.mp4', '.mkv', '.avi', '.mov', '.flv', '.wmv', '.webm',
        # archives and documents
        '.zip', '.gz', '.tgz', '.bz2', '.xz', '.7z', '.rar', '.tar', '.jar', '.pdf',
        # lockfiles and logs
        '.lock', '.log',
        # compiled artifacts
        '.bin', '.rlp', '.exe', '.dll', '.so', '.dylib', '.o', '.a', '.class', '.pyc',
        '.wasm',
        # fonts
        '.woff', '.woff2', '.ttf', '.otf', '.eot',
    })

    # Lockfiles without a '.lock' extension
    EXCLUDED_FILENAMES = frozenset({
        'package-lock.json', 'npm-shrinkwrap.json', 'pnpm-lock.yaml', 'composer.lock',
    })

    # fnmatch patterns, matched against '/' + relative posix path
    EXCLUDED_PATH_GLOBS = (
        '*/.git/*',
        '*/node_modules/*',
        '*/bower_components/*',
        '*/vendor/bundle/*',
        '*/.venv/*',
        '*/__pycache__/*',
    )


@dataclass(frozen=True)
class ScanOptions:
    """Per-run configuration surface shared by every scanner."""
    recency_threshold: timedelta = field(
        default_factory=lambda: timedelta(days=Config.RECENCY_THRESHOLD_DAYS)
    )
    filter_enabled: bool = True
    batch_width: int = field(default_factory=lambda: Config.BATCH_WIDTH)
    file_batch_width: int = field(default_factory=lambda: Config.FILE_BATCH_WIDTH)
    max_file_size: int = field(default_factory=lambda: Config.MAX_FILE_SIZE)
    excluded_extensions: FrozenSet[str] = field(default_factory=lambda: Config.EXCLUDED_EXTENSIONS)
    excluded_filenames: FrozenSet[str] = field(default_factory=lambda: Config.EXCLUDED_FILENAMES)
    excluded_path_globs: Tuple[str, ...] = field(default_factory=lambda: Config.EXCLUDED_PATH_GLOBS)
    scan_history: bool = True
    checkout_mode: bool = False

    def is_excluded_extension(self, path: str) -> bool:
        """True if the file's extension (case-insensitive) or name is never scanned."""
        name = os.path.basename(path)
        if name in self.excluded_filenames:
            return True
        return os.path.splitext(name)[1].lower() in self.excluded_extensions
