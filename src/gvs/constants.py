"""
Constants and configuration values for gvs.

This module contains all hardcoded values, URLs, timeouts, file names and
other constants used throughout the application.
"""

# Remote catalog
DEFAULT_BASE_URL = "https://go.dev/dl"
CATALOG_QUERY = "?mode=json&include=all"

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192

# Catalog cache
DEFAULT_CACHE_TTL_HOURS = 24 * 7

# Catalog entries carry the runtime name in front of the version ("go1.21.3")
DEFAULT_VERSION_PREFIX = "go"
ARCHIVE_KIND = "archive"

# File and directory names
APP_DIR_NAME = ".gvs"
VERSIONS_DIR_NAME = ".go.versions"
BIN_DIR_NAME = "bin"
EXECUTABLES_DIR_NAME = "bin"
CURRENT_VERSION_FILE = "CURRENT"
CATALOG_CACHE_FILE = "goVersions.json"
STAGING_ARCHIVE_FILE = "downloaded.tar.gz"
LOG_FILE_NAME = "gvs.log"

# Permissions
DIRECTORY_PERMISSIONS = 0o755
FORCED_PARENT_PERMISSIONS = 0o755
SYMLINK_PERMISSIONS = 0o700

# Logging configuration
LOGGER_NAME = "gvs"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Environment variable names
LOG_LEVEL_ENV_VAR = "GVS_LOG_LEVEL"
DISABLE_FILE_LOGGING_ENV_VAR = "GVS_DISABLE_FILE_LOGGING"

# Configuration file
CONFIG_FILE_NAME = "gvs.yaml"
CONFIG_KEYS = (
    "BASE_URL",
    "REQUEST_TIMEOUT",
    "CACHE_TTL_HOURS",
    "APP_DIR",
    "VERSIONS_DIR",
    "BIN_DIR",
    "VERSION_PREFIX",
    "LOG_LEVEL",
)

# Host platform names as they appear in the catalog
PLATFORM_OS_NAMES = {
    "linux": "linux",
    "darwin": "darwin",
    "windows": "windows",
    "freebsd": "freebsd",
}
PLATFORM_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "armv6l",
    "armv7l": "armv6l",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}

# User facing messages
MSG_NOTHING_TO_DELETE = "Nothing to delete"
MSG_UNUSED_DELETED = "All the unused versions are deleted!"
MSG_PATH_HINT = (
    "Before using gvs, remove any existing Go installation and add "
    '"export PATH=$PATH:$HOME/bin" to your profile file '
    "(~/.bash_profile, ~/.zshrc, ~/.profile, or ~/.bashrc)."
)
