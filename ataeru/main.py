import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ataeru.config import Config, ConfigError, load_config
from ataeru.logger_config import setup_logger
from ataeru.services.content_store import ContentStore, StorageError
from ataeru.services.id_generator import IdGenerationError, IdGenerator
from ataeru.services.key_validator import KeyValidator
from ataeru.services.storage_backend import FileSystemBackend

logger = logging.getLogger(__name__)

LANDING_PAGE = """<h1>Ataeru</h1>
<form method="post" action="/" enctype="multipart/form-data">
  <input type="file" name="file">
  <input type="text" name="key" placeholder="upload key">
  <input type="submit" value="Upload">
</form>
"""

ALLOWED_INDEX_METHODS = "GET, POST"


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Config = app.state.config
    backend = FileSystemBackend(config.storage_dir)
    app.state.backend = backend
    app.state.content_store = ContentStore(backend)
    app.state.key_validator = KeyValidator(backend)
    app.state.id_generator = IdGenerator()
    logger.info(f"Serving files from {config.files_dir}")
    logger.info(f"Maximum upload size: {config.max_file_size}MB, public upload: {config.public_upload}")
    yield


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application around a configuration loaded once at startup."""
    if config is None:
        config = load_config()

    app = FastAPI(title="Ataeru", lifespan=lifespan)
    app.state.config = config

    app.add_api_route("/", landing_page, methods=["GET"], response_class=HTMLResponse)
    app.add_api_route("/", upload_file, methods=["POST"], response_class=PlainTextResponse)
    app.add_api_route("/storage/{filename:path}", get_stored_file, methods=["GET"])
    app.add_exception_handler(StarletteHTTPException, method_not_allowed)
    return app


def file_extension(filename: Optional[str]) -> str:
    """Extension of the client-supplied filename, dot included, used verbatim."""
    if not filename:
        return ""
    _, dot, extension = os.path.basename(filename).rpartition(".")
    return dot + extension


def public_url(config: Config, filename: str) -> str:
    return f"http://{config.public_host}:{config.port}/storage/{filename}"


async def landing_page():
    return HTMLResponse(LANDING_PAGE)


async def method_not_allowed(request: Request, exc: StarletteHTTPException):
    """Answer any method other than GET and POST on / in plain text."""
    if exc.status_code != 405 or request.url.path != "/":
        return await http_exception_handler(request, exc)
    return PlainTextResponse(
        f"HTTP Method type {request.method} is unsupported on /\n",
        status_code=405,
        headers={"Allow": ALLOWED_INDEX_METHODS},
    )


async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    key: str = Form(""),
):
    """Accept an upload, deduplicate it and answer with its public URL.

    Rejections (missing or bad key, oversized file) are answered with a
    plain-text message and a 4xx status; storage failures with a 500.
    """
    config: Config = request.app.state.config
    logger.info("File upload initiated")

    # If public uploading is disabled, make sure the user has a valid key
    if not config.public_upload:
        if not key:
            logger.info("Upload rejected: no key provided")
            return PlainTextResponse("Public uploading is currently disabled, go away\n", status_code=401)
        if not await request.app.state.key_validator.is_valid(key):
            logger.warning("Upload rejected: invalid key")
            return PlainTextResponse("Incorrect key, sorry gotta go!\n", status_code=403)

    if file is None:
        logger.info("Upload rejected: no file field in form")
        return PlainTextResponse('No file was provided in the "file" form field\n', status_code=400)

    # Get size from the spooled upload
    file.file.seek(0, 2)
    size = file.file.tell()
    file.file.seek(0)

    logger.debug(f"Uploaded file: {file.filename}")
    logger.debug(f"File size: {size} bytes")
    logger.debug(f"Content type: {file.content_type}")

    if size > config.max_file_size_bytes:
        logger.info(f"Upload rejected: {size} bytes exceeds {config.max_file_size_bytes} bytes")
        return PlainTextResponse(
            f"The maximum file size is currently {config.max_file_size}MB, "
            f"you uploaded a {size / (1 << 20):.2f}MB file...\n",
            status_code=413,
        )

    try:
        file_id = request.app.state.id_generator.generate()
        data = await file.read()
        stored = await request.app.state.content_store.put(data, file_id, file_extension(file.filename))
    except (IdGenerationError, StorageError, OSError) as e:
        logger.error(f"Error while storing upload {file.filename}: {str(e)}", exc_info=True)
        return PlainTextResponse("Internal error while storing upload\n", status_code=500)
    finally:
        await file.close()

    return PlainTextResponse(public_url(config, stored.filename) + "\n")


async def get_stored_file(filename: str, request: Request):
    """Serve a stored file by exact name. Directory listings are never served."""
    path = await request.app.state.backend.resolve_file(filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Not Found")
    return FileResponse(path)


def run():
    # Console only until the configuration names the log directory
    setup_logger()

    try:
        config = load_config()
    except ConfigError as e:
        logger.critical(str(e))
        sys.exit(1)

    setup_logger(config.log_dir)

    logger.info(f"Storage directory: {config.storage_dir}")
    logger.info(f"Attempting to listen on :{config.port}")
    uvicorn.run(create_app(config), host="0.0.0.0", port=config.port)


if __name__ == "__main__":
    run()
