"""Pydantic model for datasource instance settings."""

from pydantic import BaseModel, ConfigDict, Field

GCE_AUTHENTICATION = "gce"
JWT_AUTHENTICATION = "jwt"


class DatasourceSettings(BaseModel):
    """Configuration of one datasource instance.

    url is the proxy root - monitoring api calls go to
    {url}/stackdriver/v3/projects/ and project listing goes to
    {url}/cloudresourcemanager/v1/. queries are posted to query_url.

    gce_default_project is the one mutable bit: with gce auth it starts unset
    and gets filled in by the project resolver on first use.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = 0
    url: str
    query_url: str | None = Field(default=None, alias="queryUrl")  # defaults to {url}/api/tsdb/query
    authentication_type: str = Field(default=JWT_AUTHENTICATION, alias="authenticationType")
    default_project: str | None = Field(default=None, alias="defaultProject")
    gce_default_project: str | None = Field(default=None, alias="gceDefaultProject")
    headers: dict[str, str] = Field(default_factory=dict)  # passed through untouched

    @property
    def monitoring_base_url(self) -> str:
        return f"{self.url.rstrip('/')}/stackdriver/v3/projects/"

    @property
    def resource_manager_base_url(self) -> str:
        return f"{self.url.rstrip('/')}/cloudresourcemanager/v1/"

    @property
    def resolved_query_url(self) -> str:
        return self.query_url or f"{self.url.rstrip('/')}/api/tsdb/query"
