"""Request-scoped upload models.

- BufferedUpload: one file part written to local temporary storage
- ImageGroups: field name -> ordered screenshots, with an explicit order
- TextFields: plain text hints sent alongside the screenshots
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class BufferedUpload:
    """A file part buffered to disk for the duration of one request.

    Attributes:
        field_name: Multipart field the part arrived under (grouping key).
        filename: Original client-side filename.
        mime_type: Declared content type of the part.
        path: Local temporary path holding the bytes.
        size_bytes: Number of bytes written.
    """
    field_name: str
    filename: str
    mime_type: str
    path: Path
    size_bytes: int


class ImageGroups:
    """Screenshots grouped by multipart field name.

    Groups iterate in the order their field name first appeared in the
    request body; files within a group keep their arrival order. The
    prompt's take 1/2/3 rows rely on this order, so it is kept in an
    explicit list rather than left to dict iteration.
    """

    def __init__(self) -> None:
        self._order: List[str] = []
        self._groups: Dict[str, List[BufferedUpload]] = {}

    def add(self, upload: BufferedUpload) -> None:
        key = upload.field_name
        if key not in self._groups:
            self._order.append(key)
            self._groups[key] = []
        self._groups[key].append(upload)

    def field_names(self) -> List[str]:
        return list(self._order)

    def get(self, field_name: str) -> List[BufferedUpload]:
        return list(self._groups.get(field_name, []))

    def items(self) -> Iterator[Tuple[str, List[BufferedUpload]]]:
        for key in self._order:
            yield key, list(self._groups[key])

    def ordered(self) -> List[BufferedUpload]:
        """Flatten: group order first, then file order within each group."""
        return [upload for key in self._order for upload in self._groups[key]]

    def __len__(self) -> int:
        return sum(len(files) for files in self._groups.values())

    def __bool__(self) -> bool:
        return bool(self._order)

    def __repr__(self) -> str:
        sizes = ", ".join(f"{key}={len(self._groups[key])}" for key in self._order)
        return f"ImageGroups({sizes})"


@dataclass
class TextFields:
    """Plain text form fields.

    ``url`` and ``date`` are the recognised hints; anything else the caller
    sends is kept in ``extra`` and otherwise ignored.
    """
    url: Optional[str] = None
    date: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)
