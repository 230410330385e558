"""Access gate - per-request authorization for project-scoped endpoints.

Rules, first match wins:

1. No ``Origin`` header: a same-origin or server-to-server call, allowed.
   Any non-browser client can omit Origin, so this trusts whoever can reach
   the service at the network level. ``require_api_key_without_origin``
   turns this rule off and sends such calls to rule 4.
2. Localhost origin: allowed, the origin is echoed with credentials.
3. Origin in the project's authorized list: allowed, echoed with credentials.
4. ``X-API-Key`` (or ``Authorization: Bearer``) verifies: allowed, no echo.
5. Otherwise forbidden.

The project record is always resolved first, so an unknown project is a 404
under every rule and only known ids ever reach the tenant database locator.
"""

from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlsplit

from src.zerobase.core.config import Settings, get_settings
from src.zerobase.core.exceptions import BadRequestError, ForbiddenError
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security import normalize_origin, verify_api_key
from src.zerobase.models import Project
from src.zerobase.services.project_service import ProjectService

logger = get_logger(__name__)

LOCALHOST_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


class AccessRule(StrEnum):
    NO_ORIGIN = "no_origin"
    LOCALHOST = "localhost"
    AUTHORIZED_ORIGIN = "origin"
    API_KEY = "api_key"


@dataclass(frozen=True)
class AccessDecision:
    """An allowed request: the resolved project and the rule that admitted it.

    ``allow_origin`` is the value to echo in ``Access-Control-Allow-Origin``
    (with credentials), or None when no CORS headers should be set.
    """

    project: Project
    rule: AccessRule
    allow_origin: str | None = None

    @property
    def project_id(self) -> str:
        return self.project.id


def is_localhost_origin(origin: str) -> bool:
    """Plain-http origin on a loopback host, any port.

    The host is compared whole, so ``http://localhost.example.com`` is not local.
    """
    try:
        parts = urlsplit(origin.strip().lower())
        return parts.scheme == "http" and parts.hostname in LOCALHOST_HOSTS
    except ValueError:
        return False


def extract_api_key(x_api_key: str | None, authorization: str | None) -> str | None:
    """``X-API-Key`` wins; a ``Bearer`` authorization value is the fallback."""
    if x_api_key:
        return x_api_key.strip()
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
    return None


class AccessGate:
    """Decides whether a request may reach a project's database or storage."""

    def __init__(self, projects: ProjectService, settings: Settings | None = None):
        self.projects = projects
        self.settings = settings or get_settings()

    async def check(
        self,
        project_id: str | None,
        origin: str | None,
        api_key: str | None,
    ) -> AccessDecision:
        """Run the rules for one request.

        Raises:
            BadRequestError: No project id was supplied.
            NotFoundError: The project does not exist.
            ForbiddenError: No rule admitted the request.
        """
        if not project_id:
            raise BadRequestError("projectId is required")
        project = await self.projects.get_project(project_id)

        if not origin:
            if not self.settings.require_api_key_without_origin:
                return AccessDecision(project, AccessRule.NO_ORIGIN)
        elif is_localhost_origin(origin):
            return AccessDecision(project, AccessRule.LOCALHOST, allow_origin=origin)
        else:
            normalized = normalize_origin(origin)
            authorized = {normalize_origin(u) for u in project.authorized_urls or []}
            if normalized in authorized:
                return AccessDecision(project, AccessRule.AUTHORIZED_ORIGIN, allow_origin=origin)

        if api_key and verify_api_key(api_key, project.api_key_hash):
            return AccessDecision(project, AccessRule.API_KEY)

        logger.warning("Access denied", project_id=project.id, origin=origin)
        if not origin:
            raise ForbiddenError("A valid API key is required for requests without an Origin.")
        raise ForbiddenError(
            f'Origin "{origin}" is not authorized for this project. '
            "Add it in the project Settings → Authorized URLs."
        )
