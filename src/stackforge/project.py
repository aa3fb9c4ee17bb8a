"""Default project resolution.

with jwt auth the default project is simply configured. with gce auth it
isn't known up front - the backend has to ask the metadata server which
project the instance runs in. we ask once per datasource instance and keep
the answer.
"""

import asyncio
import logging

from stackforge.compiler.query_builder import QueryBuilder
from stackforge.constants import GCE_DEFAULT_PROJECT_REF_ID
from stackforge.executor.api_client import ApiClient
from stackforge.models.settings import GCE_AUTHENTICATION, DatasourceSettings

logger = logging.getLogger(__name__)


class ProjectResolver:
    """Resolves the project used when a query doesn't name one.

    the gce lookup is single-flight: callers arriving while a discovery is
    running await that same task instead of firing their own. a caller being
    cancelled doesn't cancel the shared lookup. a failed discovery is not
    remembered, so the next caller tries again.
    """

    def __init__(self, settings: DatasourceSettings, api: ApiClient, builder: QueryBuilder) -> None:
        self.settings = settings
        self.api = api
        self.builder = builder
        self._discovery: asyncio.Task[str] | None = None

    @property
    def requires_discovery(self) -> bool:
        return self.settings.authentication_type == GCE_AUTHENTICATION

    def get_default_project(self) -> str:
        if self.requires_discovery:
            return self.settings.gce_default_project or ""
        return self.settings.default_project or ""

    async def ensure_default_project(self) -> None:
        """Make sure the gce default project is known before anything is dispatched."""
        if not self.requires_discovery or self.settings.gce_default_project:
            return

        if self._discovery is None:
            self._discovery = asyncio.ensure_future(self._discover())
        task = self._discovery
        try:
            await asyncio.shield(task)
        finally:
            # only the first waiter to get here clears it, later ones see a new task or None
            if self._discovery is task and task.done():
                self._discovery = None

    async def _discover(self) -> str:
        logger.info("Looking up GCE default project")
        response = await self.api.post(self.builder.batch([self.builder.gce_default_project_query()]))

        data = response.get("data") or {}
        result = (data.get("results") or {}).get(GCE_DEFAULT_PROJECT_REF_ID) or {}
        project = (result.get("meta") or {}).get("defaultProject") or ""
        logger.info("GCE default project is %r", project)
        self.settings.gce_default_project = project
        return project
