"""
Error taxonomy for the inspection engine.

Every failure is isolated to its smallest enclosing unit
(file < commit < branch < project); these exceptions mark the unit boundary.
"""


class InspectionError(Exception):
    """Base class for all inspection failures."""


class ConfigurationError(InspectionError):
    """Required discovery parameters are missing or the remote is unreachable."""


class TransportError(InspectionError):
    """A git subprocess returned a non-zero status or could not be started."""

    def __init__(self, message: str, command=None, returncode=None, stderr: str = ''):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class GitTimeoutError(TransportError):
    """A git subprocess exceeded its time budget and was killed."""


class DateResolutionError(InspectionError):
    """The last-commit date of a branch could not be determined."""


class DiscoveryError(InspectionError):
    """A GitLab group listing could not be fetched."""
