"""
Defines custom exceptions for the launcher to allow for more specific error handling.
"""


class LauncherError(Exception):
    """Base exception for all launcher-specific errors."""


class ConfigurationError(LauncherError):
    """Raised for issues related to configuration loading or validation."""


class PipelineBusyError(LauncherError):
    """Raised when a play request arrives while another one is still active."""


# --- Version catalog ---


class ManifestUnavailableError(LauncherError):
    """Raised when the version manifest cannot be fetched or read."""


class MalformedCatalogError(LauncherError):
    """Raised when the version manifest cannot be parsed."""


class NoStableVersionError(LauncherError):
    """Raised when the manifest does not contain any stable version."""


class UnknownVersionError(LauncherError):
    """Raised when a requested version id is not present in the manifest."""


class NoDownloadForPlatformError(LauncherError):
    """Raised when a version has no download matching the running platform."""


# --- Downloading and verification ---


class DownloadFailedError(LauncherError):
    """Raised when a download fails because of a transport error."""


class DownloadAlreadyInProgressError(PipelineBusyError):
    """Raised when a download is requested while another one is running."""


class UnexpectedContentTypeError(LauncherError):
    """Raised when the server answers with a media type that is not an archive."""


class HashMismatchError(LauncherError):
    """Raised when a downloaded file does not match its expected content hash."""


class ExtractionFailedError(LauncherError):
    """Raised when a verified archive cannot be unpacked."""


# --- Locating and launching ---


class BinDirectoryMissingError(LauncherError):
    """Raised when an installed release has no binaries directory."""


class ExecutableMissingError(LauncherError):
    """Raised when the binaries directory lacks the platform executable."""


class ProcessSpawnError(LauncherError):
    """Raised when the located executable cannot be started."""


class LaunchAlreadyInProgressError(PipelineBusyError):
    """Raised when a launch is requested while a game process is still running."""


class OperationCanceled(Exception):
    """
    Signals that the user canceled the running operation.

    Cancellation is an outcome, not a failure, and is not a LauncherError.
    """
