# server.py
# FastAPI server for the LinkedIn Post Reactors Scraper
# Projects CRUD, post scraping through PhantomBuster, and the operation log feed

import logging
import uuid
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from health import router as health_router
from reactors.activity_log import close_event_logs, read_events
from reactors.config import Settings, load_settings
from reactors.db_helper import Database
from reactors.errors import HTTP_STATUS_BY_KIND, ScrapeError, ValidationError
from reactors.pipeline import ScrapeService
from reactors.provider import PhantomBusterClient
from reactors.validation import validate_project_name

# -------------------------------------------------------------------
# Configuration
# -------------------------------------------------------------------
APP_VERSION = "0.3.0"

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("server")


@lru_cache
def get_settings() -> Settings:
    return load_settings()


@lru_cache
def get_db() -> Database:
    return Database.from_settings(get_settings())


@lru_cache
def get_client() -> Optional[PhantomBusterClient]:
    """One pooled PhantomBuster client per process; None until an API key is configured."""
    settings = get_settings()
    if not settings.phantombuster_api_key:
        return None
    return PhantomBusterClient(
        settings.phantombuster_api_key,
        base_url=settings.phantombuster_base_url,
        timeout=settings.provider_timeout_seconds,
    )


def get_scrape_service(
    settings: Settings = Depends(get_settings),
    db: Database = Depends(get_db),
    client: Optional[PhantomBusterClient] = Depends(get_client),
) -> ScrapeService:
    return ScrapeService.from_settings(settings, db, client=client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if get_client.cache_info().currsize:
        client = get_client()
        if client is not None:
            client.close()
        get_client.cache_clear()
    close_event_logs()


# -------------------------------------------------------------------
# FastAPI app setup
# -------------------------------------------------------------------
app = FastAPI(title="LinkedIn Post Reactors Scraper", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        req_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        response = await call_next(request)
        response.headers["X-Request-ID"] = req_id
        return response


app.add_middleware(RequestIDMiddleware)
app.include_router(health_router)


# -------------------------------------------------------------------
# Request bodies
# -------------------------------------------------------------------
class ScrapeBody(BaseModel):
    # checked by ScrapeService so bad values come back as validation_error
    linkedinPostUrl: Any = None
    projectId: Any = None


class ProjectBody(BaseModel):
    name: Optional[str] = None


def _error(status: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(part) for part in err["loc"] if part != "body") for err in exc.errors()]
    message = "Invalid request body"
    if any(fields):
        message = f"Invalid request body: {', '.join(f for f in fields if f)}"
    e = ValidationError(message, detail=jsonable_encoder(exc.errors()))
    return JSONResponse(e.to_payload(), status_code=HTTP_STATUS_BY_KIND[e.kind])


# -------------------------------------------------------------------
# Scraping
# -------------------------------------------------------------------
@app.post("/api/phantombuster")
async def scrape_post(body: ScrapeBody, service: ScrapeService = Depends(get_scrape_service)):
    log = service.new_log()
    try:
        result = await service.scrape(body.linkedinPostUrl, body.projectId, log)
    except ScrapeError as e:
        payload = e.to_payload()
        payload["logs"] = [entry.to_api() for entry in log.entries]
        return JSONResponse(payload, status_code=HTTP_STATUS_BY_KIND.get(e.kind, 500))
    except Exception as e:
        logger.exception("Scrape failed for %s", body.linkedinPostUrl)
        log.error("Failed to scrape LinkedIn profiles", {"details": str(e)})
        return _error(
            500,
            "Failed to scrape LinkedIn profiles",
            details=str(e),
            logs=[entry.to_api() for entry in log.entries],
        )

    return {"success": True, **result.to_api()}


# -------------------------------------------------------------------
# Projects / posts
# -------------------------------------------------------------------
@app.get("/api/projects")
def list_projects(db: Database = Depends(get_db)):
    try:
        projects = db.list_projects()
    except Exception as e:
        logger.exception("Error fetching projects")
        return _error(500, "Failed to fetch projects", details=str(e))
    return {"success": True, "projects": [p.to_api() for p in projects]}


@app.post("/api/projects")
def create_project(body: ProjectBody, db: Database = Depends(get_db)):
    valid, error = validate_project_name(body.name)
    if not valid:
        return _error(400, error)
    try:
        project = db.create_project(body.name.strip())
    except Exception as e:
        logger.exception("Error creating project")
        return _error(500, "Failed to create project", details=str(e))
    return {"success": True, "project": project.to_api()}


@app.get("/api/projects/{project_id}")
def get_project(project_id: int, db: Database = Depends(get_db)):
    project = db.get_project_with_posts(project_id)
    if not project:
        return _error(404, "Project not found")
    return {"success": True, "project": project.to_api()}


@app.get("/api/posts/{post_id}/profiles")
def list_post_profiles(post_id: int, db: Database = Depends(get_db)):
    profiles = db.list_profiles(post_id)
    return {"success": True, "profiles": [p.to_api() for p in profiles]}


# -------------------------------------------------------------------
# Operation log
# -------------------------------------------------------------------
@app.get("/api/logs")
def recent_logs(limit: int = Query(100, ge=1, le=1000), settings: Settings = Depends(get_settings)):
    return {"logs": read_events(settings.log_file, limit)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=10000, reload=True)
