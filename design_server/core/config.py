"""Service-wide configuration.

Defines the default port, site root and design sub-directory, and the
immutable `Settings` record built once at startup and shared (read-only)
by every request.
"""

import codecs
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_PORT = 3000
DEFAULT_HOST = "127.0.0.1"
DESIGNS_DIR = "ui-designs"
INDEX_PAGE = "index-standalone.html"
SSI_INDEX_PAGE = "index.html"
ENCODING = "utf-8"
LOCAL_HOSTS = frozenset(["127.0.0.1", "0.0.0.0", "localhost", "::", "::1", ""])

ENV_PREFIX = "DESIGN_SERVER_"
ENV_FIELDS = {
    "port": "PORT",
    "host": "HOST",
    "root_dir": "ROOT",
    "designs_dir": "DESIGNS_DIR",
    "base_dir": "BASE_DIR",
    "encoding": "ENCODING",
}


class Settings(BaseModel):
    """
    Process-wide server configuration.

    `base_dir` is where include paths starting with `/` are resolved and
    defaults to `root_dir / designs_dir`.
    """
    model_config = ConfigDict(frozen=True)

    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    host: str = DEFAULT_HOST
    root_dir: Path = Field(default_factory=Path.cwd, validate_default=True)
    designs_dir: str = DESIGNS_DIR
    base_dir: Path
    encoding: str = ENCODING
    payload: Dict[str, str] = Field(default_factory=dict)
    index_page: str = INDEX_PAGE

    @model_validator(mode="before")
    @classmethod
    def _default_base_dir(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("base_dir") is None:
            root = Path(data.get("root_dir") or Path.cwd())
            designs = str(data.get("designs_dir") or DESIGNS_DIR).strip("/")
            data = {**data, "base_dir": root / designs}
        return data

    @field_validator("root_dir", "base_dir")
    @classmethod
    def _absolute(cls, value: Path) -> Path:
        return value.expanduser().resolve()

    @field_validator("designs_dir")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        value = value.strip("/")
        if not value:
            raise ValueError("designs_dir must name a sub-directory")
        return value

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError:
            raise ValueError(f"unknown encoding: {value}")
        return value

    @property
    def base_url(self) -> str:
        """URL for the banner; loopback and wildcard hosts print as localhost."""
        host = self.host
        if host in LOCAL_HOSTS:
            host = "localhost"
        elif ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{self.port}"

    @property
    def designs_path(self) -> Path:
        """Directory the `/<designs_dir>/*.html` pages are read from."""
        return (self.root_dir / self.designs_dir).resolve()

    @property
    def index_url(self) -> str:
        """Path the home page redirects to."""
        return f"/{self.designs_dir}/{self.index_page}"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from defaults plus `DESIGN_SERVER_*` environment overrides."""
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {
        field: env[ENV_PREFIX + name]
        for field, name in ENV_FIELDS.items()
        if env.get(ENV_PREFIX + name)
    }

    raw_payload = env.get(ENV_PREFIX + "PAYLOAD")
    if raw_payload:
        payload = json.loads(raw_payload)
        if not isinstance(payload, dict):
            raise ValueError(f"{ENV_PREFIX}PAYLOAD must be a JSON object")
        values["payload"] = {str(k): str(v) for k, v in payload.items()}

    return Settings(**values)
