"""Report generation endpoint.

POST /generate-report accepts screenshots as multipart file parts under
any field names, plus optional ``url`` and ``date`` text fields, and
answers with the .docx document the assistant produced.

Every failure is answered with the same generic 500 body unless
``report.detailed_errors`` is enabled. Buffered uploads are deleted on
every exit path.
"""
import asyncio
import logging
import threading
from typing import Callable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse

from reportgen.assistant.pipeline import ReportPipeline
from reportgen.config import ReportGenConfig, get_config
from reportgen.errors import ReportGenerationError
from reportgen.uploads import UploadBuffer, receive_form

logger = logging.getLogger(__name__)

router = APIRouter(tags=["report"])

GENERIC_ERROR = "Failed to generate report"

# How often the disconnect watcher checks on the client
DISCONNECT_CHECK_SECONDS = 0.5


def get_report_config() -> ReportGenConfig:
    return get_config()


def get_pipeline_builder() -> Callable[[ReportGenConfig], ReportPipeline]:
    return ReportPipeline.from_config


def error_response(error: Exception, config: ReportGenConfig) -> JSONResponse:
    """Build the failure response for ``error``."""
    if not config.report.detailed_errors:
        return JSONResponse(status_code=500, content={"error": GENERIC_ERROR})

    if isinstance(error, ReportGenerationError):
        status_code, kind, detail = error.status_code, error.kind, error.message
    else:
        status_code, kind, detail = 500, "unknown", str(error)
    return JSONResponse(
        status_code=status_code,
        content={"error": GENERIC_ERROR, "kind": kind, "detail": detail},
    )


async def watch_disconnect(
    request: Request,
    cancel_event: threading.Event,
    interval: float = DISCONNECT_CHECK_SECONDS,
) -> None:
    """Set ``cancel_event`` once the client has gone away."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            logger.warning("Client disconnected, abandoning report generation")
            cancel_event.set()
            return
        await asyncio.sleep(interval)


@router.post("/generate-report")
async def generate_report(
    request: Request,
    config: ReportGenConfig = Depends(get_report_config),
    build_pipeline: Callable[[ReportGenConfig], ReportPipeline] = Depends(get_pipeline_builder),
):
    """Generate a performance report from uploaded screenshots.

    Form fields:
        <any name>: one or more screenshot files; the field name groups them
        url: optional analysed URL
        date: optional report date

    Returns:
        The .docx report as an attachment, or a JSON error.
    """
    cancel_event = threading.Event()
    buffer: Optional[UploadBuffer] = None
    watcher: Optional[asyncio.Task] = None
    form = None

    try:
        buffer = UploadBuffer(
            temp_dir=config.uploads.temp_dir,
            max_file_size_bytes=config.uploads.max_file_size_bytes,
            max_files=config.uploads.max_files,
        )
        pipeline = build_pipeline(config)
        form = await request.form()
        groups, fields = await receive_form(form, buffer)

        watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
        document = await run_in_threadpool(pipeline.generate, groups, fields, cancel_event)
    except ReportGenerationError as e:
        logger.error(f"Report generation failed ({e.kind}): {e.message}")
        return error_response(e, config)
    except Exception as e:
        logger.exception(f"Report generation failed unexpectedly: {e}")
        return error_response(e, config)
    finally:
        cancel_event.set()
        if watcher is not None:
            watcher.cancel()
        if buffer is not None:
            buffer.cleanup()
        if form is not None:
            await form.close()

    logger.info(f"Report {document.file_id} ready (thread {document.thread_id})")
    return StreamingResponse(
        document.iter_bytes(),
        media_type=config.report.media_type,
        headers={
            "Content-Disposition": f"attachment; filename={config.report.filename}",
        },
    )
