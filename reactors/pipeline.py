# pipeline.py
"""
High-level orchestrator for one post scrape:
validate -> launch agent -> poll -> normalize -> persist.

Called from server.py (POST /api/phantombuster) and main.py (CLI).
Each call runs to completion, timeout or failure before returning; no
state is shared between calls apart from the database.
"""

import asyncio
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from .activity_log import OperationLog
from .config import Settings
from .db_helper import Database
from .errors import ScrapeError, ValidationError
from .launcher import JobLauncher
from .models import ScrapeRequest, ScrapeResult
from .poller import Poller
from .provider import PhantomBusterClient
from .validation import LINKEDIN_MAX_LIKERS, estimate_execution_time, validate_post_url

logger = logging.getLogger(__name__)


class ScrapeService:
    def __init__(
        self,
        settings: Settings,
        db: Database,
        launcher: JobLauncher,
        poller: Poller,
    ):
        self.settings = settings
        self.db = db
        self.launcher = launcher
        self.poller = poller

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        db: Database,
        client: Optional[PhantomBusterClient] = None,
        **poller_kwargs,
    ) -> "ScrapeService":
        if client is None and settings.phantombuster_api_key:
            client = PhantomBusterClient(
                settings.phantombuster_api_key,
                base_url=settings.phantombuster_base_url,
                timeout=settings.provider_timeout_seconds,
            )
        launcher = JobLauncher(client, settings.phantombuster_phantom_id, settings.argument_mapping)
        poller = Poller(
            client,
            interval=settings.poll_interval_seconds,
            max_attempts=settings.poll_max_attempts,
            **poller_kwargs,
        )
        return cls(settings, db, launcher, poller)

    def new_log(self) -> OperationLog:
        return OperationLog(log_file=self.settings.log_file)

    async def scrape(
        self,
        post_url: Any,
        project_id: Any,
        log: Optional[OperationLog] = None,
    ) -> ScrapeResult:
        """
        Scrape the reactors of `post_url` and store them under `project_id`.
        Raises a ScrapeError subclass on any failure; `log` keeps the
        entries written up to that point.
        """
        log = log or self.new_log()
        try:
            return await self._scrape(post_url, project_id, log)
        except ScrapeError as e:
            log.error(e.message, {"category": e.kind.value, "details": e.detail})
            raise

    async def _scrape(self, post_url: Any, project_id: Any, log: OperationLog) -> ScrapeResult:
        log.operation("Validating LinkedIn post URL", {"postUrl": post_url})
        request = self._build_request(post_url, project_id)

        project = await asyncio.to_thread(self.db.get_project, request.project_id)
        if project is None:
            raise ValidationError(
                f"Project {request.project_id} not found", detail={"projectId": request.project_id}
            )
        log.info(f"Project: {project.name}")

        log.operation("Launching PhantomBuster agent")
        job = await asyncio.to_thread(
            self.launcher.launch, request.post_url, request.session_credential, log
        )
        estimate = estimate_execution_time(LINKEDIN_MAX_LIKERS)
        log.info(
            f"Agent runs take up to ~{estimate}s ({LINKEDIN_MAX_LIKERS} likers max)",
            {"estimatedSeconds": estimate},
        )

        log.operation("Polling for results")
        profiles = await self.poller.poll(job, log)

        post = await asyncio.to_thread(self.db.find_or_create_post, project.id, request.post_url)
        log.info(f"Post #{post.id} for {request.post_url}")
        saved = await asyncio.to_thread(self.db.save_profiles, post.id, profiles)
        log.success(f"Saved {len(saved)} profile(s)")

        return ScrapeResult(
            profiles=profiles,
            post_id=post.id,
            container_id=job.container_id,
            logs=list(log.entries),
        )

    def _build_request(self, post_url: Any, project_id: Any) -> ScrapeRequest:
        valid, error = validate_post_url(post_url)
        if not valid:
            raise ValidationError(error, detail={"postUrl": post_url})
        if project_id is None or project_id == "":
            raise ValidationError("Project id is required")
        try:
            return ScrapeRequest(
                post_url=post_url.strip(),
                project_id=project_id,
                session_credential=self.settings.linkedin_session_cookie or "",
            )
        except PydanticValidationError as e:
            raise ValidationError("Project id must be an integer", detail={"projectId": project_id}) from e
