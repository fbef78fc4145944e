"""Shared test fixtures and configuration for backend tests."""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from reportgen.assistant.client import AssistantClient
from reportgen.assistant.pipeline import ReportPipeline
from reportgen.assistant.poller import RunPoller
from reportgen.config import (
    AssistantSettings,
    OpenAISecrets,
    PollingSettings,
    ReportGenConfig,
    Secrets,
    UploadSettings,
    reset_config,
    set_config,
)
from reportgen.main import app
from reportgen.report.router import get_pipeline_builder, get_report_config

from fakes import make_content, make_message, make_run


@pytest.fixture
def config(tmp_path):
    """A fully configured ReportGenConfig writing temp files under tmp_path."""
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    cfg = ReportGenConfig(
        assistant=AssistantSettings(assistant_id="asst_test"),
        polling=PollingSettings(interval_seconds=2.0, max_attempts=10, timeout_seconds=60),
        uploads=UploadSettings(temp_dir=str(upload_dir)),
        secrets=Secrets(openai=OpenAISecrets(api_key="sk-test")),
    )
    set_config(cfg)
    yield cfg
    reset_config()


@pytest.fixture
def assistant_client():
    """A MagicMock AssistantClient whose happy path produces a report."""
    client = MagicMock(spec=AssistantClient)
    uploaded = []

    def _upload(path, purpose):
        uploaded.append(path)
        return f"file-in-{len(uploaded)}"

    client.upload_file.side_effect = _upload
    client.create_thread.return_value = "thread_1"
    client.create_message.return_value = "msg_user"
    client.create_run.return_value = "run_1"
    client.retrieve_run.side_effect = [make_run("queued"), make_run("in_progress"), make_run("completed")]
    client.list_messages.return_value = [
        make_message("assistant", attachments=["file-out"], message_id="msg_reply"),
        make_message("user", message_id="msg_user"),
    ]
    client.file_content.return_value = make_content()
    client.uploaded_paths = uploaded
    return client


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def pipeline(assistant_client, sleeps):
    """A ReportPipeline over the mock client that never really sleeps."""
    poller = RunPoller(
        assistant_client.retrieve_run,
        interval_seconds=2.0,
        max_attempts=10,
        sleep=sleeps.append,
        cancel=assistant_client.cancel_run,
    )
    return ReportPipeline(assistant_client, assistant_id="asst_test", poller=poller)


@pytest.fixture
def api_client(config, pipeline):
    """TestClient with config and pipeline dependencies overridden."""
    app.dependency_overrides[get_report_config] = lambda: config
    app.dependency_overrides[get_pipeline_builder] = lambda: (lambda cfg: pipeline)
    yield TestClient(app)
    app.dependency_overrides.clear()
