"""Local buffering of uploaded screenshots.

Each request gets its own temporary directory. Every file part is streamed
into it before the remote stages start, and the whole directory is removed
when the request ends, whatever the outcome.
"""
import logging
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from starlette.datastructures import FormData, UploadFile

from reportgen.errors import UploadRejectedError
from .schemas import BufferedUpload, ImageGroups, TextFields

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

RECOGNISED_TEXT_FIELDS = ("url", "date")


class UploadBuffer:
    """Owns the temporary files of a single request."""

    def __init__(
        self,
        temp_dir: Optional[str] = None,
        max_file_size_bytes: int = 20 * 1024 * 1024,
        max_files: int = 24,
    ) -> None:
        self.max_file_size_bytes = max_file_size_bytes
        self.max_files = max_files
        self._root = Path(tempfile.mkdtemp(prefix="reportgen-", dir=temp_dir))
        self._paths: List[Path] = []
        self._cleaned = False

    @property
    def root(self) -> Path:
        return self._root

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    async def add(self, field_name: str, upload: UploadFile) -> BufferedUpload:
        """Stream one file part to disk.

        Raises:
            UploadRejectedError: If the file count or per-file size limit
                is exceeded. The partially written file stays tracked so
                cleanup removes it.
        """
        if len(self._paths) >= self.max_files:
            raise UploadRejectedError(
                f"Too many files: limit is {self.max_files}"
            )

        filename = upload.filename or "unnamed"
        suffix = Path(filename).suffix.lower()
        with tempfile.NamedTemporaryFile(
            dir=self._root, suffix=suffix, delete=False
        ) as fh:
            path = Path(fh.name)
            self._paths.append(path)
            size = 0
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.max_file_size_bytes:
                    raise UploadRejectedError(
                        f"File '{filename}' exceeds limit of "
                        f"{self.max_file_size_bytes} bytes"
                    )
                fh.write(chunk)

        logger.debug(f"Buffered {field_name}/{filename} ({size} bytes) at {path}")
        return BufferedUpload(
            field_name=field_name,
            filename=filename,
            mime_type=upload.content_type or "application/octet-stream",
            path=path,
            size_bytes=size,
        )

    def cleanup(self) -> int:
        """Delete every buffered file and the request directory.

        Failures are logged and swallowed so they never mask the request
        outcome. Safe to call more than once; only the first call acts.

        Returns:
            Number of files removed.
        """
        if self._cleaned:
            return 0
        self._cleaned = True

        removed = 0
        for path in self._paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"Failed to delete temp file {path}: {e}")
        try:
            shutil.rmtree(self._root)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete temp dir {self._root}: {e}")

        logger.debug(f"Cleaned up {removed} temp files from {self._root}")
        return removed

    def __enter__(self) -> "UploadBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


def _clean_text(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


async def receive_form(
    form: FormData, buffer: UploadBuffer
) -> Tuple[ImageGroups, TextFields]:
    """Split a parsed multipart form into screenshot groups and text hints.

    Field names are used purely as grouping keys; no naming convention is
    enforced.
    """
    groups = ImageGroups()
    fields = TextFields()

    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            groups.add(await buffer.add(key, value))
        elif key in RECOGNISED_TEXT_FIELDS:
            setattr(fields, key, _clean_text(value))
        else:
            fields.extra[key] = value

    logger.info(
        f"Received {len(groups)} screenshots in {len(groups.field_names())} groups "
        f"(url={'yes' if fields.url else 'no'}, date={'yes' if fields.date else 'no'})"
    )
    return groups, fields
