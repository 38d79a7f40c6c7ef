"""
Custom exceptions for gvs.

This module defines domain-specific exceptions for every way the catalog,
version matching, install and prune pipelines can fail. All of them derive
from GvsError so the command dispatcher can report any of them uniformly.
"""

from typing import Optional


class GvsError(Exception):
    """
    Base exception for all gvs errors.

    All custom exceptions in gvs inherit from this class to allow for easy
    catching of all application-specific errors.
    """

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(GvsError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Unreadable configuration files
    - YAML syntax errors
    - Invalid configuration values
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when a configuration value has the wrong type or range."""

    def __init__(
        self, message: str, key: Optional[str] = None, details: Optional[str] = None
    ) -> None:
        super().__init__(message, details)
        self.key = key


# =============================================================================
# Catalog Errors
# =============================================================================


class CatalogError(GvsError):
    """Base exception for failures while obtaining the release catalog."""

    pass


class CatalogFetchError(CatalogError):
    """
    Exception raised when the remote catalog cannot be fetched.

    Attributes:
        status_code: The HTTP status code when the server answered with a non-success status.
        url: The catalog URL that was requested.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.url = url


class CatalogParseError(CatalogError):
    """
    Exception raised when cached or fetched catalog JSON is malformed.

    Attributes:
        source: Where the bad payload came from (a file path or URL).
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source


class CacheWriteError(CatalogError):
    """Exception raised when the fetched catalog cannot be persisted to the cache file."""

    def __init__(
        self, message: str, path: Optional[str] = None, details: Optional[str] = None
    ) -> None:
        super().__init__(message, details)
        self.path = path


# =============================================================================
# Validation / lookup Errors
# =============================================================================


class ValidationError(GvsError):
    """
    Exception raised when user input fails validation.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class InvalidVersionFormat(ValidationError):
    """Exception raised when a version specifier does not match the accepted grammar."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"invalid version format: {value!r}",
            field="version",
            value=value,
            details="expected major[.minor][.patch|rcN], e.g. 1.21, 1.21.3 or 1.21rc2",
        )


class VersionLookupError(GvsError):
    """Base exception for a version that cannot be found in the catalog."""

    pass


class NoMatchingVersion(VersionLookupError):
    """Exception raised when a specifier matches no catalog entry."""

    def __init__(self, pattern: str) -> None:
        super().__init__(f"{pattern} is not a valid version")
        self.pattern = pattern


class NoStableVersion(VersionLookupError):
    """Exception raised when the catalog holds no stable release."""

    def __init__(self) -> None:
        super().__init__("latest version not found")


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(GvsError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being downloaded when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class ArtifactDownloadError(DownloadError):
    """
    Exception raised when an artifact download fails.

    Attributes:
        status_code: The HTTP status code, when the server answered with a non-success status.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, url, details)
        self.status_code = status_code


# =============================================================================
# Install Errors
# =============================================================================


class InstallError(GvsError):
    """
    Base exception for failures in the install pipeline.

    Attributes:
        path: The file system path involved, when there is one.
    """

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path


class ArtifactNotFound(InstallError):
    """Exception raised when a release has no archive artifact for the platform."""

    def __init__(self, os_name: str, arch: str) -> None:
        super().__init__(f"installer not found for {os_name!r} {arch!r}")
        self.os = os_name
        self.arch = arch


class ChecksumNotDeclared(InstallError):
    """Exception raised when the catalog omits the checksum of the platform's archive."""

    def __init__(self, os_name: str, arch: str) -> None:
        super().__init__(f"checksum not found for {os_name!r} {arch!r}")
        self.os = os_name
        self.arch = arch


class ChecksumMismatch(InstallError):
    """Exception raised when the staged archive's SHA-256 differs from the declared one."""

    def __init__(self, expected: str, actual: str, path: Optional[str] = None) -> None:
        super().__init__(
            "checksums do not match",
            path=path,
            details=f"expected {expected!r}, got {actual!r}",
        )
        self.expected = expected
        self.actual = actual


class ChecksumComputationError(InstallError):
    """Exception raised when the staged archive cannot be read to compute its digest."""

    pass


class RelocationError(InstallError):
    """Exception raised when the extracted directory cannot be renamed to the version name."""

    pass


class SymlinkError(InstallError):
    """Exception raised when the executable symlinks cannot be switched."""

    pass


class ActiveMarkerError(InstallError):
    """Exception raised when the active-version marker cannot be written."""

    pass


class StagingCleanupError(InstallError):
    """Exception raised when the staging archive cannot be removed after a successful install."""

    pass


# =============================================================================
# Archive Errors
# =============================================================================


class ArchiveError(GvsError):
    """
    Exception raised for archive-related errors.

    Attributes:
        archive_path: Path to the problematic archive.
    """

    def __init__(
        self,
        message: str,
        archive_path: Optional[str] = None,
        details: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        self.archive_path = archive_path


class ExtractionError(ArchiveError):
    """Exception raised when archive extraction fails."""

    pass


class PathTraversalError(ExtractionError):
    """Exception raised when an archive member would be written outside the extraction root."""

    def __init__(
        self, member: str, destination: str, archive_path: Optional[str] = None
    ) -> None:
        super().__init__(
            f"invalid file path: {member}",
            archive_path=archive_path,
            details=f"resolves outside {destination}",
        )
        self.member = member
        self.destination = destination


# =============================================================================
# Prune Errors
# =============================================================================


class PruneError(GvsError):
    """Base exception for failures while deleting unused versions."""

    pass


class NoInstalledVersions(PruneError):
    """Exception raised when pruning is requested but no active version is recorded."""

    def __init__(self) -> None:
        super().__init__("there is no installed version")


class DeleteVersionFailed(PruneError):
    """
    Exception raised when an installed version cannot be deleted.

    Attributes:
        version: The version whose directory could not be removed.
        cause: The underlying error.
        deleted_count: How many versions were deleted before the failure.
    """

    def __init__(self, version: str, cause: BaseException, deleted_count: int = 0) -> None:
        super().__init__(
            f"an error occurred while deleting {version!r}", details=str(cause)
        )
        self.version = version
        self.cause = cause
        self.deleted_count = deleted_count
