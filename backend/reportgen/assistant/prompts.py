"""Prompt text sent to the report assistant.

The instruction block is fixed; only the URL/date hints and the screenshot
manifest vary per request.
"""
from typing import List, Optional, Sequence

from reportgen.uploads.schemas import BufferedUpload

# Shown in place of a hint the caller did not send
INFER_FROM_IMAGES = "Extract from images"

METRIC_COLUMNS = ("Overall", "FCP", "LCP", "INP", "CLS", "TTFB")
DEVICE_ROWS = ("Mobile", "Desktop")
TAKES = (1, 2, 3)

METRIC_LIST = ", ".join(METRIC_COLUMNS)


def _comparison_table() -> str:
    header = "               Take | " + " | ".join(METRIC_COLUMNS)
    lines = [header, ""]
    for device in DEVICE_ROWS:
        for take in TAKES:
            label = device if take == TAKES[0] else ""
            lines.append(f"{label:<15}{take}")
    return "\n".join(lines)


REPORT_INSTRUCTIONS = f"""You're an analyst creating a detailed PSI performance report from screenshots.
1. Detect the analyzed URL and date (use provided fields if given).
2. Extract and compare core metrics ({METRIC_LIST}).
3. Build a comparison table like this:

{_comparison_table()}

4. Generate an image grid: mobile screenshots on top, desktop below.
5. Provide a short summary of insights.
Output everything in a downloadable .docx file."""


def format_manifest(uploads: Sequence[BufferedUpload]) -> str:
    """List attached screenshots in attachment order.

    Example:
        1. take1_mobile: home.png
        2. take1_desktop: home-wide.png
    """
    return "\n".join(
        f"{i}. {upload.field_name}: {upload.filename}"
        for i, upload in enumerate(uploads, start=1)
    )


def build_report_message(
    uploads: Sequence[BufferedUpload],
    url: Optional[str] = None,
    date: Optional[str] = None,
) -> str:
    """Compose the single user message that starts the report run."""
    parts: List[str] = [
        REPORT_INSTRUCTIONS,
        "",
        "Create a performance report using these screenshots.",
        f"Optional URL: {url or INFER_FROM_IMAGES}",
        f"Optional date: {date or INFER_FROM_IMAGES}",
    ]
    if uploads:
        parts += [
            "",
            "Attached screenshots (field name: file), in attachment order:",
            format_manifest(uploads),
        ]
    return "\n".join(parts)
