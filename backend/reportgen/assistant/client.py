"""Thin adapter over the OpenAI Assistants API.

Every method maps onto one remote call. SDK exceptions are wrapped into
AssistantCallError naming the step that failed, so the pipeline can tell
which stage broke without knowing about openai's exception classes.

Usage:
    client = AssistantClient(api_key="sk-...")
    handle = client.upload_file(path, purpose="assistants")
    thread_id = client.create_thread()
"""
import logging
from pathlib import Path
from typing import Any, List, Optional

from reportgen.errors import AssistantCallError

logger = logging.getLogger(__name__)


class AssistantClient:
    """Remote thread/message/run/file operations.

    Attributes:
        api_key: OpenAI API key for authentication.
        organization: Optional organization ID.
        base_url: Optional API base URL override.
    """

    def __init__(
        self,
        api_key: str,
        organization: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.api_key = api_key
        self.organization = organization
        self.base_url = base_url
        self._client: Optional[Any] = None

    def _get_client(self) -> Any:
        """Get or create the OpenAI client.

        Raises:
            ImportError: If openai package is not installed.
        """
        if self._client is None:
            try:
                import openai
            except ImportError:
                raise ImportError(
                    "openai package is required for AssistantClient. "
                    "Install it with: pip install openai"
                )
            kwargs = {"api_key": self.api_key}
            if self.organization:
                kwargs["organization"] = self.organization
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = openai.OpenAI(**kwargs)
        return self._client

    # -- files ------------------------------------------------------------

    def upload_file(self, path: Path, purpose: str) -> str:
        """Upload one local file and return its remote file id.

        Errors propagate unwrapped; the caller reports them per file.
        """
        client = self._get_client()
        with open(path, "rb") as fh:
            remote = client.files.create(file=fh, purpose=purpose)
        return remote.id

    def delete_file(self, file_id: str) -> None:
        try:
            self._get_client().files.delete(file_id)
        except Exception as e:
            raise AssistantCallError("files.delete", e)

    def file_content(self, file_id: str) -> Any:
        """Fetch a file's raw content; the result supports ``iter_bytes()``."""
        try:
            return self._get_client().files.content(file_id)
        except Exception as e:
            raise AssistantCallError("files.content", e)

    # -- threads, messages, runs -------------------------------------------

    def create_thread(self) -> str:
        try:
            thread = self._get_client().beta.threads.create()
        except Exception as e:
            raise AssistantCallError("threads.create", e)
        return thread.id

    def create_message(
        self,
        thread_id: str,
        content: str,
        file_ids: List[str],
        attachment_tool: str = "code_interpreter",
    ) -> str:
        attachments = [
            {"file_id": file_id, "tools": [{"type": attachment_tool}]}
            for file_id in file_ids
        ]
        try:
            message = self._get_client().beta.threads.messages.create(
                thread_id=thread_id,
                role="user",
                content=content,
                attachments=attachments,
            )
        except Exception as e:
            raise AssistantCallError("messages.create", e)
        return message.id

    def create_run(self, thread_id: str, assistant_id: str) -> str:
        try:
            run = self._get_client().beta.threads.runs.create(
                thread_id=thread_id,
                assistant_id=assistant_id,
            )
        except Exception as e:
            raise AssistantCallError("runs.create", e)
        return run.id

    def retrieve_run(self, thread_id: str, run_id: str) -> Any:
        try:
            return self._get_client().beta.threads.runs.retrieve(
                run_id=run_id, thread_id=thread_id
            )
        except Exception as e:
            raise AssistantCallError("runs.retrieve", e)

    def cancel_run(self, thread_id: str, run_id: str) -> None:
        try:
            self._get_client().beta.threads.runs.cancel(
                run_id=run_id, thread_id=thread_id
            )
        except Exception as e:
            raise AssistantCallError("runs.cancel", e)

    def list_messages(self, thread_id: str) -> List[Any]:
        """List thread messages, newest first."""
        try:
            page = self._get_client().beta.threads.messages.list(
                thread_id=thread_id, order="desc"
            )
        except Exception as e:
            raise AssistantCallError("messages.list", e)
        return list(page.data)


def find_output_file_id(message: Any) -> Optional[str]:
    """Return the first file a message references, or None.

    Looks at the message's attachments first, then at ``file_path``
    annotations inside its text content.
    """
    for attachment in getattr(message, "attachments", None) or []:
        file_id = getattr(attachment, "file_id", None)
        if file_id:
            return file_id

    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) != "text":
            continue
        for annotation in getattr(block.text, "annotations", None) or []:
            if getattr(annotation, "type", None) == "file_path":
                return annotation.file_path.file_id
    return None

