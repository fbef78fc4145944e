"""Report generation pipeline.

Drives one report from buffered screenshots to the returned document:

    1. Upload: push every screenshot to the remote file store (all or nothing)
    2. Conversation: create a thread, post the instruction message, start a run
    3. Poll: wait for the run to reach a terminal status
    4. Retrieve: find the assistant's reply and fetch the file it references

Each stage needs the identifiers produced by the one before it, so the
stages run strictly in order and nothing is retried.

Usage:
    pipeline = ReportPipeline.from_config(get_config())
    document = pipeline.generate(groups, fields)
    for chunk in document.iter_bytes():
        ...
"""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

from reportgen.config import ReportGenConfig
from reportgen.errors import (
    AssistantCallError,
    ConfigurationError,
    NoFileReturnedError,
    NoScreenshotsError,
    UploadFailedError,
)
from reportgen.uploads.schemas import BufferedUpload, ImageGroups, TextFields
from .client import AssistantClient, find_output_file_id
from .poller import RunPoller
from .prompts import build_report_message

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class RemoteFileHandle:
    """A screenshot as known to the remote file store."""
    file_id: str
    upload: BufferedUpload


@dataclass
class ReportDocument:
    """The generated report as returned by the assistant.

    Attributes:
        file_id: Remote id of the output file.
        thread_id: Thread the report was produced in.
        run_id: Run that produced it.
        content: ``files.content`` response holding the bytes.
    """
    file_id: str
    thread_id: str
    run_id: str
    content: Any

    def iter_bytes(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        yield from self.content.iter_bytes(chunk_size)


class ReportPipeline:
    """Sequential upload -> thread -> run -> poll -> retrieve orchestration."""

    def __init__(
        self,
        client: AssistantClient,
        assistant_id: str,
        poller: Optional[RunPoller] = None,
        file_purpose: str = "assistants",
        attachment_tool: str = "code_interpreter",
        delete_remote_inputs: bool = True,
    ) -> None:
        if not assistant_id:
            raise ConfigurationError("assistant_id is not configured")
        self.client = client
        self.assistant_id = assistant_id
        self.poller = poller or RunPoller(client.retrieve_run, cancel=client.cancel_run)
        self.file_purpose = file_purpose
        self.attachment_tool = attachment_tool
        self.delete_remote_inputs = delete_remote_inputs

    @classmethod
    def from_config(cls, config: ReportGenConfig) -> "ReportPipeline":
        """Build a pipeline from configuration.

        Raises:
            ConfigurationError: If the API key or assistant id is missing.
        """
        secrets = config.secrets.openai
        if not secrets.api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        if not config.assistant.assistant_id:
            raise ConfigurationError("REPORT_ASSISTANT_ID is not configured")

        client = AssistantClient(
            api_key=secrets.api_key,
            organization=secrets.organization,
            base_url=secrets.base_url,
        )
        poller = RunPoller(
            client.retrieve_run,
            interval_seconds=config.polling.interval_seconds,
            max_attempts=config.polling.max_attempts,
            timeout_seconds=config.polling.timeout_seconds,
            cancel=client.cancel_run,
        )
        return cls(
            client,
            assistant_id=config.assistant.assistant_id,
            poller=poller,
            file_purpose=config.assistant.file_purpose,
            attachment_tool=config.assistant.attachment_tool,
            delete_remote_inputs=config.assistant.delete_remote_inputs,
        )

    # -- stages -------------------------------------------------------------

    def upload_all(self, groups: ImageGroups) -> List[RemoteFileHandle]:
        """Upload every screenshot in group order, then file order.

        Raises:
            UploadFailedError: On the first failed upload. Files uploaded
                before it are deleted remotely (best effort).
        """
        handles: List[RemoteFileHandle] = []
        for upload in groups.ordered():
            try:
                file_id = self.client.upload_file(upload.path, purpose=self.file_purpose)
            except Exception as e:
                logger.error(f"Upload of {upload.field_name}/{upload.filename} failed: {e}")
                self._delete_remote(handles)
                raise UploadFailedError(upload.filename, upload.field_name, e)
            handles.append(RemoteFileHandle(file_id=file_id, upload=upload))
            logger.debug(f"Uploaded {upload.field_name}/{upload.filename} as {file_id}")

        logger.info(f"Uploaded {len(handles)} screenshots")
        return handles

    def start_run(self, handles: List[RemoteFileHandle], fields: TextFields) -> Tuple[str, str]:
        """Create the thread, post the message and start the run.

        Returns:
            Tuple of (thread_id, run_id).
        """
        thread_id = self.client.create_thread()
        logger.info(f"Thread created: {thread_id}")

        content = build_report_message(
            [h.upload for h in handles], url=fields.url, date=fields.date
        )
        message_id = self.client.create_message(
            thread_id,
            content,
            [h.file_id for h in handles],
            attachment_tool=self.attachment_tool,
        )
        logger.debug(f"Message {message_id} posted with {len(handles)} attachments")

        run_id = self.client.create_run(thread_id, self.assistant_id)
        logger.info(f"Run {run_id} started on thread {thread_id} (assistant {self.assistant_id})")
        return thread_id, run_id

    def retrieve_document(self, thread_id: str, run_id: str) -> ReportDocument:
        """Fetch the file referenced by the assistant's reply.

        Raises:
            NoFileReturnedError: If there is no assistant message or it
                references no file.
        """
        messages = self.client.list_messages(thread_id)
        reply = next((m for m in messages if getattr(m, "role", None) == "assistant"), None)
        if reply is None:
            raise NoFileReturnedError(thread_id, "no assistant message in thread")

        file_id = find_output_file_id(reply)
        if not file_id:
            raise NoFileReturnedError(thread_id, f"assistant message {reply.id} has no file")

        logger.info(f"Fetching report file {file_id} from thread {thread_id}")
        content = self.client.file_content(file_id)
        return ReportDocument(file_id=file_id, thread_id=thread_id, run_id=run_id, content=content)

    def generate(
        self,
        groups: ImageGroups,
        fields: TextFields,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReportDocument:
        """Run every stage and return the generated document.

        Raises:
            NoScreenshotsError: If ``groups`` is empty; no remote call is made.
            ReportGenerationError: Any stage failure, see reportgen.errors.
        """
        if not groups:
            raise NoScreenshotsError()

        handles = self.upload_all(groups)
        try:
            thread_id, run_id = self.start_run(handles, fields)
            self.poller.wait(thread_id, run_id, cancel_event=cancel_event)
            return self.retrieve_document(thread_id, run_id)
        finally:
            if self.delete_remote_inputs:
                self._delete_remote(handles)

    def _delete_remote(self, handles: List[RemoteFileHandle]) -> None:
        for handle in handles:
            try:
                self.client.delete_file(handle.file_id)
            except AssistantCallError as e:
                logger.warning(f"Could not delete remote file {handle.file_id}: {e}")
