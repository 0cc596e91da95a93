"""Server configuration: which applications are live and where they push."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

log = logging.getLogger(__name__)


def _string(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"config field {name!r} must be a string, got {type(value).__name__}")
    return value


@dataclass
class Application:
    """One configured application."""

    appname: str = ""
    liveon: str = ""
    hlson: str = ""
    static_push: list[str] = field(default_factory=list)

    @classmethod
    def _from_mapping(cls, raw: Any) -> Application:
        if not isinstance(raw, dict):
            raise ValueError("each server entry must be an object")
        app = cls()
        # Keys match field names regardless of case; unknown keys are ignored.
        for key, value in raw.items():
            name = key.lower()
            if value is None:
                continue
            if name in ("appname", "liveon", "hlson"):
                setattr(app, name, _string(value, key))
            elif name == "static_push":
                if not isinstance(value, list):
                    raise ValueError(f"config field {key!r} must be a list")
                app.static_push = [_string(item, key) for item in value]
        return app


@dataclass
class ServerConfig:
    """The set of configured applications."""

    servers: list[Application] = field(default_factory=list)

    @classmethod
    def from_json(cls, text: str) -> ServerConfig:
        data = json.loads(text)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("configuration must be a JSON object")
        config = cls()
        for key, value in data.items():
            if key.lower() != "server" or value is None:
                continue
            if not isinstance(value, list):
                raise ValueError(f"config field {key!r} must be a list")
            config.servers = [Application._from_mapping(item) for item in value]
        return config

    def _live_app(self, appname: str) -> Application | None:
        return next(
            (app for app in self.servers if app.appname == appname and app.liveon == "on"),
            None,
        )

    def check_app_name(self, appname: str) -> bool:
        """True when the named application is configured and live."""
        return self._live_app(appname) is not None

    def static_push_urls(self, appname: str) -> list[str]:
        """Static push URLs of the first live application of that name, or []."""
        app = self._live_app(appname)
        if app is None:
            return []
        return list(app.static_push)


def load_config(path: str | Path) -> ServerConfig:
    """Read and parse a JSON configuration file."""
    log.info("starting load configure file(%s)......", path)
    text = Path(path).read_text(encoding="utf-8")
    log.info("loadconfig: \r\n%s", text)
    config = ServerConfig.from_json(text)
    log.info("get config json data:%s", config)
    return config