# src/gvs/utils.py
import hashlib
import importlib.metadata
import platform
from typing import BinaryIO, Tuple

from gvs.constants import PLATFORM_ARCH_NAMES, PLATFORM_OS_NAMES
from gvs.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `gvs/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("gvs")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"gvs/{app_version}"

    return _USER_AGENT_CACHE


def sha256_of_stream(stream: BinaryIO, chunk_size: int = 4096) -> str:
    """
    Compute the SHA-256 hex digest of an open binary stream.

    The stream is consumed in fixed-size chunks so large archives are never
    loaded into memory. I/O errors raised by the stream propagate.

    Returns:
        str: The 64-character lowercase hexadecimal digest.
    """
    sha256_hash = hashlib.sha256()
    for chunk in iter(lambda: stream.read(chunk_size), b""):
        sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


def detect_platform() -> Tuple[str, str]:
    """
    Map the host operating system and machine to the names used by the catalog.

    Unknown values are passed through lower-cased so the lookup in the catalog
    fails with a clear "installer not found" error instead of guessing.

    Returns:
        Tuple[str, str]: `(os, arch)`, e.g. `("linux", "amd64")`.
    """
    system = platform.system().lower()
    machine = platform.machine().lower()
    os_name = PLATFORM_OS_NAMES.get(system, system)
    arch = PLATFORM_ARCH_NAMES.get(machine, machine)
    logger.debug(f"Detected platform {system}/{machine} -> {os_name}/{arch}")
    return os_name, arch


def format_size(num_bytes: int) -> str:
    """Render a byte count the way download messages show it (MB above 1 MB, bytes otherwise)."""
    size_mb = num_bytes / (1024 * 1024)
    if size_mb >= 1.0:
        return f"{size_mb:.1f} MB"
    return f"{num_bytes} bytes"
