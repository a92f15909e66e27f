"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Zip packaging for exports and zip reading for imports.
"""

import io
import logging
import zipfile
from collections.abc import Callable, Iterable, Iterator

from casebook.core.exceptions import PackagingError, ReadError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def _to_bytes(payload: str | bytes) -> bytes:
    if isinstance(payload, bytes):
        return payload
    return payload.encode("utf-8")


class ArchivePackager:
    """Bundles named JSON payloads into a single deflated zip archive."""

    def __init__(self, compression_level: int = 6):
        """Initialize the packager.

        Args:
            compression_level: Deflate level, 0 (store) to 9 (smallest)
        """
        self.compression_level = compression_level

    def package(
        self,
        entries: Iterable[tuple[str, str | bytes]],
        total: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> bytes:
        """Write every ``(filename, payload)`` entry into a new archive.

        Args:
            entries: Archive member names and their text or byte payloads
            total: Number of entries, used to report progress as a fraction
            progress_callback: Called with the completed fraction after each entry

        Returns:
            The zip archive as bytes

        Raises:
            PackagingError: If any entry cannot be produced or written
        """
        buffer = io.BytesIO()
        written = 0
        try:
            with zipfile.ZipFile(
                buffer,
                mode="w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            ) as archive:
                for filename, payload in entries:
                    archive.writestr(filename, _to_bytes(payload))
                    written += 1
                    if progress_callback and total:
                        progress_callback(min(written / total, 1.0))
        except PackagingError:
            raise
        except Exception as e:
            logger.error(f"Archive generation failed after {written} entries: {e}")
            raise PackagingError(f"Could not generate archive: {e}") from e

        if progress_callback and not total:
            progress_callback(1.0)
        logger.debug(f"Packaged {written} entries into {buffer.tell()} bytes")
        return buffer.getvalue()


def read_archive(data: bytes) -> Iterator[tuple[str, bytes]]:
    """Yield ``(name, content)`` for every file in a zip archive.

    Directory entries are skipped.

    Raises:
        ReadError: If the data is not a readable zip archive
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, OSError, ValueError) as e:
        raise ReadError(f"Could not open archive: {e}") from e

    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            try:
                content = archive.read(info)
            except (zipfile.BadZipFile, OSError, RuntimeError, ValueError) as e:
                raise ReadError(f"Could not read archive entry {info.filename}: {e}") from e
            yield info.filename, content
