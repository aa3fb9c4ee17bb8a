"""YAML config loading for stackforge.

a config file can hold a datasource block, dashboard variables, panels, or any
mix of them - handy to keep one file per dashboard:

    datasource:
      url: http://localhost:3000/api/datasources/proxy/1
      authenticationType: jwt
      defaultProject: my-project
    variables:
      zone: [us-east1-b, us-west1-a]
    panels:
      - title: cpu
        intervalMs: 60000
        targets:
          - refId: A
            metricQuery: {metricType: compute.googleapis.com/instance/cpu/utilization}
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stackforge.errors import ConfigError
from stackforge.models.query import Target
from stackforge.models.settings import DatasourceSettings


class PanelDefinition(BaseModel):
    """A named set of targets queried together."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    targets: list[Target] = Field(default_factory=list)
    interval_ms: int | None = Field(default=None, alias="intervalMs")
    scoped_vars: dict[str, Any] = Field(default_factory=dict, alias="scopedVars")


class ConfigRegistry:
    """Everything loaded from one or more config files.

    later files override the datasource block and individual variables of
    earlier ones, duplicate panel titles are an error.
    """

    def __init__(self) -> None:
        self.datasource: DatasourceSettings | None = None
        self.variables: dict[str, str | list[str]] = {}
        self.panels: dict[str, PanelDefinition] = {}

    def load(self, path: str | Path) -> "ConfigRegistry":
        """Load a file, or every yaml file under a directory."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config path not found: {path}")

        if path.is_dir():
            files = sorted(path.glob("**/*.yaml")) + sorted(path.glob("**/*.yml"))
            if not files:
                raise ConfigError(f"No YAML files found in {path}")
        else:
            files = [path]

        for file in files:
            self._load_file(file)
        return self

    def _load_file(self, path: Path) -> None:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return  # empty file
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at the top of {path}")

        try:
            if data.get("datasource"):
                self.datasource = DatasourceSettings.model_validate(data["datasource"])

            self.variables.update(data.get("variables") or {})

            for panel_data in data.get("panels") or []:
                panel = PanelDefinition.model_validate(panel_data)
                if panel.title in self.panels:
                    raise ConfigError(f"Duplicate panel: {panel.title}")
                self.panels[panel.title] = panel
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e

    def get_datasource(self) -> DatasourceSettings:
        if self.datasource is None:
            raise ConfigError("No datasource configured")
        return self.datasource

    def get_panel(self, title: str) -> PanelDefinition:
        if title not in self.panels:
            raise KeyError(f"Unknown panel: {title}")
        return self.panels[title]


def load_config(path: str | Path) -> ConfigRegistry:
    return ConfigRegistry().load(path)
