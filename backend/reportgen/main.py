"""Report Generator Application.

Entry point for the screenshot-to-report service. Uploaded PageSpeed
Insights screenshots are handed to a pre-configured OpenAI assistant,
which builds the comparison report; the resulting .docx is streamed back
to the caller.

Modules:
    - uploads: multipart receiving and temp-file cleanup
    - assistant: OpenAI Assistants protocol and the report pipeline
    - report: the POST /generate-report endpoint
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reportgen.config import get_config
from reportgen.report.router import router as report_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# httpx/httpcore log every TCP connection; openai logs every retry decision.
for _noisy in (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
    "openai",
    "openai._base_client",
    "multipart",
    "python_multipart",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    if not config.secrets.openai.api_key:
        logger.warning("OPENAI_API_KEY is not set. Report requests will fail.")
    if not config.assistant.assistant_id:
        logger.warning("REPORT_ASSISTANT_ID is not set. Report requests will fail.")

    logger.info(
        f"Report generator ready on http://{config.server.host}:{config.server.port}"
    )

    yield  # Application runs here

    logger.info("Application shutdown complete")


app = FastAPI(
    title="Report Generator API",
    description="Turns PageSpeed Insights screenshots into a .docx comparison report",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(report_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status plus whether the credential and assistant are configured.
    """
    config = get_config()
    return {
        "status": "ok",
        "api_key_configured": bool(config.secrets.openai.api_key),
        "assistant_configured": bool(config.assistant.assistant_id),
    }


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "reportgen.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
    )
