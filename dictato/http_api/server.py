"""Local HTTP endpoint that transcribes uploaded audio files."""

import asyncio
import logging
import os
import shutil
import tempfile
import threading
from typing import Optional

from aiohttp import web

from ..errors import TranscriptionError
from ..services.pipeline_service import PipelineOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 4800
MAX_BODY_BYTES = 100 * 1024 * 1024
AUDIO_FIELD = "audio"

PIPELINE_KEY = web.AppKey("pipeline", PipelineOrchestrator)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def store_upload(upload) -> str:
    """Copy an uploaded file object to a temp WAV file and return its path."""
    with tempfile.NamedTemporaryFile(prefix="dictato-api-", suffix=".wav",
                                     delete=False) as tmp:
        shutil.copyfileobj(upload, tmp)
        return tmp.name


async def handle_transcribe(request: web.Request) -> web.Response:
    """POST /api/transcribe: transcription and dictionary correction only."""
    pipeline = request.app[PIPELINE_KEY]

    if not request.content_type.startswith("multipart/"):
        return _error("Expected multipart/form-data", 400)
    try:
        form = await request.post()
    except ValueError as e:
        return _error(f"Failed to read multipart data: {e}", 400)

    field = form.get(AUDIO_FIELD)
    if not isinstance(field, web.FileField):
        return _error(f"Missing '{AUDIO_FIELD}' file field", 400)

    loop = asyncio.get_running_loop()
    try:
        temp_path = await loop.run_in_executor(None, store_upload, field.file)
    except OSError as e:
        logger.error(f"Failed to store uploaded audio: {e}")
        return _error(f"Failed to write temp file: {e}", 500)

    logger.info(f"Received audio upload '{field.filename}' -> {temp_path}")
    try:
        text = await loop.run_in_executor(None, pipeline.transcribe_and_correct, temp_path)
    except TranscriptionError as e:
        logger.error(f"API transcription failed: {e}")
        return _error(str(e), 500)
    finally:
        try:
            os.unlink(temp_path)
        except OSError as e:
            logger.warning(f"Failed to remove temp file {temp_path}: {e}")

    return web.json_response({"text": text})


def create_app(pipeline: PipelineOrchestrator) -> web.Application:
    app = web.Application(client_max_size=MAX_BODY_BYTES)
    app[PIPELINE_KEY] = pipeline
    app.router.add_post("/api/transcribe", handle_transcribe)
    return app


def run_server(app: web.Application, port: int = DEFAULT_PORT, host: str = DEFAULT_HOST) -> None:
    """Serve ``app`` on the calling thread until interrupted."""
    logger.info(f"HTTP API listening on http://{host}:{port}")
    web.run_app(app, host=host, port=port, print=None)


class BackgroundServer:
    """Runs the endpoint on its own event loop in a daemon thread."""

    def __init__(self, app: web.Application, port: int = DEFAULT_PORT, host: str = DEFAULT_HOST):
        self.app = app
        self.port = port
        self.host = host
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._runner: Optional[web.AppRunner] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    def start(self, timeout: float = 5.0) -> None:
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.name = "HttpApi"
        self._thread.start()
        if not self._ready.wait(timeout):
            logger.warning("HTTP API did not report ready in time")

    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._runner = web.AppRunner(self.app)
        try:
            self._loop.run_until_complete(self._runner.setup())
            site = web.TCPSite(self._runner, self.host, self.port)
            self._loop.run_until_complete(site.start())
        except OSError as e:
            logger.error(f"Failed to start HTTP API on {self.host}:{self.port}: {e}")
            self._ready.set()
            return
        logger.info(f"HTTP API listening on http://{self.host}:{self.port}")
        self._ready.set()
        self._loop.run_forever()
        self._loop.run_until_complete(self._runner.cleanup())
        self._loop.close()

    def stop(self) -> None:
        if self._loop is not None and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
