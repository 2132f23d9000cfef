"""Locate or fetch an SPK kernel with Sun, Earth and Moon ephemerides.

Resolution order for :func:`resolve_ephemeris_source`:

1. ``LUNAR_BSP``: an explicit ``.bsp`` file, or a directory holding kernels.
2. ``LUNAR_BSP_CACHE_DIR`` (default ``~/.lunarcore/kernels``) with the
   default kernel name.

Missing kernels are fetched from ``LUNAR_BSP_URL`` (the JPL ``de440s.bsp``
by default, 1849-2150 coverage). Downloads go to a ``.part`` file and are
only renamed into place once the DAF/SPK signature checks out.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import httpx

from .errors import EphemerisAcquisitionError

LOGGER = logging.getLogger(__name__)

DEFAULT_KERNEL_NAME = "de440s.bsp"
DEFAULT_KERNEL_URL = f"https://naif.jpl.nasa.gov/pub/naif/generic_kernels/spk/planets/{DEFAULT_KERNEL_NAME}"
DEFAULT_CACHE_DIR = Path.home() / ".lunarcore" / "kernels"

SPK_SIGNATURE = b"DAF/SPK"
CHUNK_SIZE = 1 << 20


def kernel_url() -> str:
    return os.environ.get("LUNAR_BSP_URL") or DEFAULT_KERNEL_URL


def is_spk_file(path: Path) -> bool:
    """True when *path* starts with the DAF/SPK identification word."""

    try:
        with path.open("rb") as handle:
            return handle.read(len(SPK_SIGNATURE)) == SPK_SIGNATURE
    except OSError:
        return False


def fetch_kernel(url: str, destination: Path) -> Path:
    """Stream *url* into *destination*, validating it as an SPK kernel.

    Raises
    ------
    EphemerisAcquisitionError
        On transport errors, non-2xx responses, or a payload that is not an
        SPK file. No partial file is left behind.
    """

    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")
    LOGGER.info(json.dumps({"event": "kernel_fetch_started", "url": url, "destination": str(destination)}))

    received = 0
    try:
        with httpx.Client(follow_redirects=True, timeout=httpx.Timeout(120.0, connect=30.0)) as client:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                with partial.open("wb") as handle:
                    for chunk in response.iter_bytes(chunk_size=CHUNK_SIZE):
                        handle.write(chunk)
                        received += len(chunk)
    except (httpx.HTTPError, OSError) as exc:
        partial.unlink(missing_ok=True)
        raise EphemerisAcquisitionError(f"Failed to download kernel from {url}: {exc}") from exc

    if not is_spk_file(partial):
        partial.unlink(missing_ok=True)
        raise EphemerisAcquisitionError(f"Payload from {url} is not an SPK kernel")

    partial.replace(destination)
    LOGGER.info(json.dumps({"event": "kernel_fetch_finished", "url": url, "bytes": received}))
    return destination


def _kernels_in(directory: Path) -> list[Path]:
    return sorted(p for p in directory.glob("*.bsp") if p.is_file())


def _resolve(path: Path) -> Path:
    if path.is_dir():
        if not _kernels_in(path):
            fetch_kernel(kernel_url(), path / DEFAULT_KERNEL_NAME)
        return path
    if path.suffix.lower() != ".bsp":
        raise EphemerisAcquisitionError(f"Kernel path must be a directory or a .bsp file: {path}")
    if path.is_file():
        if not is_spk_file(path):
            raise EphemerisAcquisitionError(f"Not an SPK kernel: {path}")
        return path
    if path.exists():
        raise EphemerisAcquisitionError(f"Kernel path is not a regular file: {path}")
    return fetch_kernel(kernel_url(), path)


def resolve_ephemeris_source() -> Path:
    """Path of a usable kernel file or kernel directory, fetching one if needed."""

    override = os.environ.get("LUNAR_BSP")
    if override:
        return _resolve(Path(override).expanduser())
    cache_dir = Path(os.environ.get("LUNAR_BSP_CACHE_DIR") or DEFAULT_CACHE_DIR).expanduser()
    return _resolve(cache_dir / DEFAULT_KERNEL_NAME)
