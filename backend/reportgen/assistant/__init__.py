"""Remote assistant integration.

Wraps the OpenAI Assistants protocol (files, threads, messages, runs)
behind AssistantClient and drives it through ReportPipeline.

Usage:
    from reportgen.assistant import ReportPipeline

    pipeline = ReportPipeline.from_config(config)
    document = pipeline.generate(groups, fields)
"""
from .client import AssistantClient, find_output_file_id
from .pipeline import RemoteFileHandle, ReportDocument, ReportPipeline
from .poller import FAILURE_STATUSES, SUCCESS_STATUS, RunPoller
from .prompts import REPORT_INSTRUCTIONS, build_report_message, format_manifest

__all__ = [
    "AssistantClient",
    "find_output_file_id",
    "RemoteFileHandle",
    "ReportDocument",
    "ReportPipeline",
    "RunPoller",
    "SUCCESS_STATUS",
    "FAILURE_STATUSES",
    "REPORT_INSTRUCTIONS",
    "build_report_message",
    "format_manifest",
]
