from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)
    print(f"✓ Loaded environment from {env_path}")

# Add parent directory to path for bkn and llm imports
sys.path.insert(0, str(BASE_DIR))
from bkn import ProjectStore, build_graph, diagnostics_to_list, network_to_dict
from bkn.builder import summarize
from bkn.store import DocumentNotFoundError, ProjectNotFoundError, StoreError
from llm import DATA_VIEWS, LLMServiceError, build_data_sources_summary, generate_document
from llm.generation import generate_into_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_PORT = int(os.environ.get("PORT", "8800"))

# Configuration
PROJECTS_DIR = Path(os.environ.get("BKN_PROJECTS_DIR", str(BASE_DIR / "output" / "projects")))
EXAMPLES_DIR = Path(os.environ.get("BKN_EXAMPLES_DIR", str(BASE_DIR / "examples")))


class FilePayload(BaseModel):
    content: str = Field(..., description="Full document text.")


class RenamePayload(BaseModel):
    old_path: str = Field(..., min_length=1)
    new_path: str = Field(..., min_length=1)


class ProjectPayload(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = None
    description: str = ""
    files: Dict[str, str] = Field(default_factory=dict)


class GenerateFilePayload(BaseModel):
    path: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1, max_length=10000)


class GenerateContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_sources_summary: Optional[str] = Field(None, alias="dataSourcesSummary")
    existing_files: Dict[str, str] = Field(default_factory=dict, alias="existingFiles")
    current_file: Optional[str] = Field(None, alias="currentFile")


class GeneratePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., min_length=1, max_length=10000)
    context: GenerateContext = Field(default_factory=GenerateContext)
    project_id: Optional[str] = Field(None, alias="projectId")

    @field_validator("prompt")
    @classmethod
    def clean_prompt(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Prompt cannot be empty.")
        return cleaned


app = FastAPI(title="BKN Editor Backend", version="1.0.0")

# For production, set CORS_ORIGINS="https://yourdomain.com,https://app.yourdomain.com"
cors_origins_str = os.environ.get("CORS_ORIGINS", "*")
if cors_origins_str == "*":
    allowed_origins = ["*"]
    logger.warning("CORS is set to allow all origins. This is not recommended for production!")
else:
    allowed_origins = [origin.strip() for origin in cors_origins_str.split(",") if origin.strip()]
    logger.info(f"CORS allowed origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

_store: Optional[ProjectStore] = None


def get_store() -> ProjectStore:
    """Project store shared by all requests, seeded with the example projects."""
    global _store
    if _store is None:
        _store = ProjectStore(PROJECTS_DIR)
        _store.import_examples(EXAMPLES_DIR)
        logger.info(f"✓ Project store ready at {PROJECTS_DIR}")
    return _store


def _store_error(exc: StoreError) -> HTTPException:
    if isinstance(exc, (ProjectNotFoundError, DocumentNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.get("/health")
def health_check() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/projects")
def list_projects(store: ProjectStore = Depends(get_store)) -> JSONResponse:
    projects = [
        {"id": p.id, "name": p.name, "description": p.description}
        for p in store.list_projects()
    ]
    return JSONResponse({"projects": projects})


@app.post("/api/projects", status_code=201)
def create_project(payload: ProjectPayload, store: ProjectStore = Depends(get_store)) -> JSONResponse:
    try:
        project = store.create_project(payload.id, payload.name, payload.description, payload.files)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return JSONResponse(
        {"id": project.id, "name": project.name, "description": project.description},
        status_code=201,
    )


@app.delete("/api/projects/{project_id}")
def delete_project(project_id: str, store: ProjectStore = Depends(get_store)) -> Dict[str, str]:
    try:
        store.delete_project(project_id)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return {"status": "deleted"}


@app.get("/api/projects/{project_id}/files")
def list_files(project_id: str, store: ProjectStore = Depends(get_store)) -> JSONResponse:
    try:
        files = store.list_files(project_id)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return JSONResponse({"project": project_id, "files": files})


@app.get("/api/projects/{project_id}/files/{path:path}")
def read_file(project_id: str, path: str, store: ProjectStore = Depends(get_store)) -> JSONResponse:
    try:
        content = store.read_file(project_id, path)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return JSONResponse({"path": path, "content": content})


@app.put("/api/projects/{project_id}/files/{path:path}")
def write_file(
    project_id: str,
    path: str,
    payload: FilePayload,
    store: ProjectStore = Depends(get_store),
) -> Dict[str, str]:
    try:
        store.write_file(project_id, path, payload.content)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return {"status": "saved", "path": path}


@app.delete("/api/projects/{project_id}/files/{path:path}")
def delete_file(project_id: str, path: str, store: ProjectStore = Depends(get_store)) -> Dict[str, str]:
    try:
        store.delete_file(project_id, path)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return {"status": "deleted", "path": path}


@app.post("/api/projects/{project_id}/rename")
def rename_file(
    project_id: str,
    payload: RenamePayload,
    store: ProjectStore = Depends(get_store),
) -> Dict[str, str]:
    try:
        store.rename_file(project_id, payload.old_path, payload.new_path)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return {"status": "renamed", "path": payload.new_path}


@app.get("/api/projects/{project_id}/network")
def get_network(project_id: str, store: ProjectStore = Depends(get_store)) -> JSONResponse:
    """Parsed network export plus the records that could not be kept."""
    try:
        network = store.load_network(project_id)
    except StoreError as exc:
        raise _store_error(exc) from exc

    return JSONResponse({
        "network": network_to_dict(network),
        "stats": summarize(network),
        "diagnostics": diagnostics_to_list(network),
    })


@app.get("/api/projects/{project_id}/graph")
def get_graph(project_id: str, store: ProjectStore = Depends(get_store)) -> JSONResponse:
    try:
        network = store.load_network(project_id)
    except StoreError as exc:
        raise _store_error(exc) from exc
    return JSONResponse(build_graph(network))


@app.get("/api/data-sources")
def list_data_sources() -> JSONResponse:
    views: List[Dict[str, Any]] = [
        {
            "id": view.id,
            "name": view.name,
            "description": view.description,
            "columns": [
                {"name": c.name, "type": c.type, "description": c.description}
                for c in view.columns
            ],
        }
        for view in DATA_VIEWS.values()
    ]
    return JSONResponse({"dataSources": views, "summary": build_data_sources_summary()})


@app.post("/api/generate")
def generate(payload: GeneratePayload, store: ProjectStore = Depends(get_store)) -> StreamingResponse:
    """Stream a generated BKN document as plain text."""
    existing_files = payload.context.existing_files
    if payload.project_id and not existing_files:
        try:
            existing_files = store.list_files(payload.project_id)
        except StoreError as exc:
            raise _store_error(exc) from exc

    chunks = generate_document(
        payload.prompt,
        existing_files=existing_files,
        current_file=payload.context.current_file,
        data_sources_summary=payload.context.data_sources_summary,
    )

    def _stream():
        try:
            yield from chunks
        except LLMServiceError as exc:
            logger.error(f"Generation failed mid-stream: {exc}")
            raise

    return StreamingResponse(
        _stream(),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache"},
    )


@app.post("/api/projects/{project_id}/generate")
def generate_file(
    project_id: str,
    payload: GenerateFilePayload,
    store: ProjectStore = Depends(get_store),
) -> JSONResponse:
    """Generate a document and save it once complete; a failed generation saves nothing."""
    try:
        content = generate_into_store(store, project_id, payload.path, payload.prompt)
    except StoreError as exc:
        raise _store_error(exc) from exc
    except LLMServiceError as exc:
        logger.error(f"Generation for {project_id}/{payload.path} failed: {exc}")
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return JSONResponse({"path": payload.path, "content": content})


def run_server(host: str = "0.0.0.0", port: int = DEFAULT_PORT, reload: bool = False) -> None:
    import uvicorn

    uvicorn.run(
        "app:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    run_server(port=DEFAULT_PORT, reload=False)
