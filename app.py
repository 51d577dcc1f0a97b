import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from ai_client import ChatClient
from archiver import ARCHIVE_NAME, build_archive, iter_archive
from config import Settings
from deploy_ops import AzureBlobStore, SiteDeployer
from errors import (DeploymentError, ParseError, StorageError,
                    UpstreamModelError, ValidationError)
from project_store import DirectoryProjectStore, ProjectStore
from site_parser import extract_files

settings = Settings.from_env()

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger("site-forge")

PROJECT_DIR = os.path.abspath(settings.project_dir)
logger.info("Project directory: %s", PROJECT_DIR)
try:
    os.makedirs(PROJECT_DIR, exist_ok=True)
except OSError:
    logger.exception("Failed to create project directory '%s'", PROJECT_DIR)
    raise

_store = DirectoryProjectStore(PROJECT_DIR)
_chat_client = ChatClient(
    settings.openai_api_key,
    base_url=settings.openai_base_url,
    timeout=settings.model_timeout,
    intent_model=settings.intent_model,
    code_model=settings.code_model,
)
_deployer = SiteDeployer(
    AzureBlobStore(settings.azure_storage_connection_string, settings.azure_container),
    live_url=settings.static_site_url,
    strategy=settings.deploy_strategy,
)


def get_store() -> ProjectStore:
    return _store


def get_chat_client() -> ChatClient:
    return _chat_client


def get_deployer() -> SiteDeployer:
    return _deployer


app = FastAPI(title="site-forge")


class IntentRequest(BaseModel):
    tamil_text: Optional[str] = Field(default=None, alias="tamilText")


class GenerateRequest(BaseModel):
    intent: Optional[str] = None


class EditRequest(BaseModel):
    filename: Optional[str] = None
    content: Optional[str] = None


def _fail(status_code: int, **content) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, **content})


# bodies for a request that is missing, not JSON, or has fields of the wrong type
_BAD_REQUEST = {
    "/intent": {"success": False, "error": "Tamil text is required"},
    "/generate-code": {"success": False, "error": "Intent is required to generate code."},
    "/save-edits": {"message": "Filename and content required"},
}


@app.exception_handler(RequestValidationError)
async def payload_validation_failed(request: Request, exc: RequestValidationError):
    logger.warning("Payload validation failed for %s: %s", request.url.path, exc.errors())
    content = _BAD_REQUEST.get(request.url.path, {"success": False, "error": "Invalid request payload"})
    return JSONResponse(status_code=400, content=content)


@app.post("/intent")
def detect_intent(body: IntentRequest, client: ChatClient = Depends(get_chat_client)):
    if not body.tamil_text or not body.tamil_text.strip():
        return _fail(400, error="Tamil text is required")
    try:
        intent = client.detect_intent(body.tamil_text)
    except UpstreamModelError:
        logger.exception("Intent detection failed")
        return _fail(500, error="Failed to detect intent")
    logger.info("Tamil text: %s", body.tamil_text)
    logger.info("Intent: %s", intent)
    return {"success": True, "intent": intent}


@app.post("/generate-code")
def generate_code(body: GenerateRequest,
                  client: ChatClient = Depends(get_chat_client),
                  store: ProjectStore = Depends(get_store)):
    if not body.intent or not body.intent.strip():
        return _fail(400, error="Intent is required to generate code.")
    try:
        output = client.generate_site(body.intent)
        logger.debug("Model code output:\n%.4000s", output)
        files = extract_files(output)
        names = store.materialize(files)
    except (UpstreamModelError, ParseError, StorageError, ValidationError):
        logger.exception("Code generation failed")
        return _fail(500, error="Failed to generate project code")
    logger.info("Generated %d files: %s", len(names), names)
    return {"success": True, "message": "Code generated and saved", "files": names}


@app.get("/download")
def download(store: ProjectStore = Depends(get_store)):
    try:
        buf = build_archive(store)
    except StorageError:
        logger.exception("Archive error")
        return _fail(500, error="Could not create archive")
    headers = {"Content-Disposition": f"attachment; filename={ARCHIVE_NAME}"}
    return StreamingResponse(iter_archive(buf), media_type="application/zip", headers=headers)


@app.post("/save-edits")
def save_edits(body: EditRequest, store: ProjectStore = Depends(get_store)):
    if not body.filename or not body.content:
        return JSONResponse(status_code=400, content={"message": "Filename and content required"})
    try:
        store.write(body.filename, body.content)
    except ValidationError as e:
        logger.warning("Rejected edit: %s", e)
        return JSONResponse(status_code=400, content={"message": str(e)})
    except StorageError:
        logger.exception("Failed to save edits to %s", body.filename)
        return JSONResponse(status_code=500, content={"message": "Failed to save edits"})
    return {"message": "Edits saved successfully!"}


@app.post("/deploy")
def deploy(deployer: SiteDeployer = Depends(get_deployer), store: ProjectStore = Depends(get_store)):
    try:
        url = deployer.sync(store)
    except (DeploymentError, StorageError) as e:
        logger.exception("Deploy error")
        return _fail(500, message="Failed to deploy site", error=str(e))
    return {"success": True, "message": "Website deployed successfully!", "url": url}


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/debug")
def debug_info(store: ProjectStore = Depends(get_store)):
    """Return runtime diagnostics without exposing any secret values."""
    try:
        files = store.list()
    except StorageError as e:
        files = []
        logger.warning("Could not list project files: %s", e)
    return {
        "cwd": os.getcwd(),
        "project_dir": PROJECT_DIR,
        "project_files": files,
        "OPENAI_API_KEY_set": bool(settings.openai_api_key),
        "AZURE_STORAGE_CONNECTION_STRING_set": bool(settings.azure_storage_connection_string),
        "STATIC_SITE_URL": settings.static_site_url,
        "deploy_strategy": settings.deploy_strategy,
        "model_timeout": settings.model_timeout,
    }


app.mount("/preview", StaticFiles(directory=PROJECT_DIR, html=True), name="preview")

# The bundled editor frontend is optional; mount it last so it cannot shadow the API.
if os.path.isdir(settings.frontend_dir):
    app.mount("/", StaticFiles(directory=settings.frontend_dir, html=True), name="frontend")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
