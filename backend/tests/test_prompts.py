"""Tests for the report prompt text."""
from pathlib import Path

from reportgen.assistant.prompts import (
    INFER_FROM_IMAGES,
    REPORT_INSTRUCTIONS,
    build_report_message,
    format_manifest,
)
from reportgen.uploads import BufferedUpload


def _upload(field_name, filename):
    return BufferedUpload(
        field_name=field_name, filename=filename, mime_type="image/png",
        path=Path("/tmp") / filename, size_bytes=1,
    )


class TestReportInstructions:
    def test_names_every_metric_column(self):
        for metric in ("Overall", "FCP", "LCP", "INP", "CLS", "TTFB"):
            assert metric in REPORT_INSTRUCTIONS

    def test_table_lists_mobile_before_desktop_takes(self):
        table_lines = [
            line for line in REPORT_INSTRUCTIONS.splitlines()
            if line.strip() in {"1", "2", "3"} or line.startswith(("Mobile", "Desktop"))
        ]
        assert [line.split()[-1] for line in table_lines] == ["1", "2", "3", "1", "2", "3"]
        assert table_lines[0].startswith("Mobile")
        assert table_lines[3].startswith("Desktop")

    def test_asks_for_grid_summary_and_docx(self):
        assert "mobile screenshots on top, desktop below" in REPORT_INSTRUCTIONS
        assert "summary" in REPORT_INSTRUCTIONS
        assert ".docx" in REPORT_INSTRUCTIONS


class TestBuildReportMessage:
    def test_uses_provided_hints(self):
        message = build_report_message([], url="https://example.com", date="2024-05-01")
        assert "Optional URL: https://example.com" in message
        assert "Optional date: 2024-05-01" in message

    def test_missing_hints_ask_to_infer(self):
        message = build_report_message([])
        assert f"Optional URL: {INFER_FROM_IMAGES}" in message
        assert f"Optional date: {INFER_FROM_IMAGES}" in message

    def test_includes_instructions_and_manifest(self):
        uploads = [_upload("take1_mobile", "a.png"), _upload("take1_desktop", "b.png")]
        message = build_report_message(uploads)

        assert message.startswith(REPORT_INSTRUCTIONS)
        assert "1. take1_mobile: a.png\n2. take1_desktop: b.png" in message

    def test_manifest_numbering(self):
        assert format_manifest([_upload("x", "1.png")]) == "1. x: 1.png"
        assert format_manifest([]) == ""
