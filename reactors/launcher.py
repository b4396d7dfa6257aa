# launcher.py
"""
Builds the agent launch request for a post URL and submits it.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from .activity_log import OperationLog
from .config import ArgumentMapping
from .errors import ConfigError, CredentialTooShortError, ProviderError, ValidationError
from .models import Job
from .provider import PhantomBusterClient

logger = logging.getLogger(__name__)

# PhantomBuster rejects shorter sessionCookie values
MIN_SESSION_LENGTH = 15

COMPANY_URL_TEMPLATE = "https://www.linkedin.com/company/{slug}/"


def derive_company_slug(post_url: str) -> Optional[str]:
    """
    Best-effort organisation slug for a post URL:
    https://www.linkedin.com/posts/acme_some-title-activity-123 -> "acme".
    A heuristic, not a verified mapping for every LinkedIn URL shape.
    """
    segments = [s for s in urlparse(post_url).path.split("/") if s]
    try:
        segment = segments[segments.index("posts") + 1]
    except (ValueError, IndexError):
        return None
    slug = segment.split("_", 1)[0].strip()
    return slug or None


def build_argument(post_url: str, session_credential: str, mapping: ArgumentMapping) -> Dict[str, Any]:
    """Lay out the agent `argument` object as the configured agent expects it."""
    argument: Dict[str, Any] = dict(mapping.extra)
    argument[mapping.session_key] = session_credential

    if mapping.style == "company":
        slug = derive_company_slug(post_url)
        if not slug:
            raise ValidationError(
                "Could not derive an organisation from the post URL",
                detail={"postUrl": post_url},
            )
        argument[mapping.company_key] = COMPANY_URL_TEMPLATE.format(slug=slug)

    argument[mapping.url_key] = post_url
    return argument


class JobLauncher:
    def __init__(
        self,
        client: Optional[PhantomBusterClient],
        agent_id: Optional[str],
        mapping: Optional[ArgumentMapping] = None,
    ):
        self.client = client
        self.agent_id = agent_id
        self.mapping = mapping or ArgumentMapping()

    def check_config(self, session_credential: Optional[str]) -> None:
        if self.client is None or not self.client.api_key:
            raise ConfigError("PhantomBuster API key is not configured (PHANTOMBUSTER_API_KEY)")
        if not self.agent_id:
            raise ConfigError("PhantomBuster agent id is not configured (PHANTOMBUSTER_PHANTOM_ID)")
        if not session_credential:
            raise ConfigError("LinkedIn session cookie is not configured (LINKEDIN_SESSION_COOKIE)")
        if len(session_credential) < MIN_SESSION_LENGTH:
            raise CredentialTooShortError(
                f"LinkedIn session cookie must be at least {MIN_SESSION_LENGTH} characters",
                detail={"length": len(session_credential)},
            )

    def launch(
        self,
        post_url: str,
        session_credential: Optional[str],
        log: Optional[OperationLog] = None,
    ) -> Job:
        """Launch the agent for `post_url`; returns the container to poll."""
        self.check_config(session_credential)
        argument = build_argument(post_url, session_credential, self.mapping)

        if log:
            log.api(
                "POST /agents/launch",
                {"agentId": self.agent_id, "argumentKeys": sorted(argument.keys())},
            )
        body = self.client.launch(self.agent_id, argument)

        container_id = body.get("containerId")
        if not container_id:
            raise ProviderError("Launch response did not include a containerId", detail=body)

        job = Job(container_id=str(container_id), launched_at=datetime.now(timezone.utc))
        logger.info("Launched agent %s -> container %s", self.agent_id, job.container_id)
        if log:
            log.success(f"Agent launched (container {job.container_id})")
        return job
