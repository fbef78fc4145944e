"""Upload receiving and local temp-file handling.

Screenshots arrive as multipart file parts under arbitrary field names
(``take1_mobile``, ``take2_desktop`` ...). They are buffered to a
per-request temporary directory, grouped by field name, and deleted when
the request finishes.
"""
from .schemas import BufferedUpload, ImageGroups, TextFields
from .service import UploadBuffer, receive_form

__all__ = [
    "BufferedUpload",
    "ImageGroups",
    "TextFields",
    "UploadBuffer",
    "receive_form",
]
