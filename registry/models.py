"""Persisted weblet records."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, field_validator

from os_controller.base_controller import ApplicationIdentity

Engine = Literal["browser", "native"]


class Weblet(BaseModel):
    """One entry of weblets.json."""

    name: str
    url: str
    pid: int | None = None
    engine: Engine | None = None

    @field_validator("name")
    @classmethod
    def _valid_name(cls, value: str) -> str:
        value = value.strip()
        if not value or value.startswith(".") or "/" in value or "\0" in value:
            raise ValueError(f"invalid weblet name: {value!r}")
        return value

    @field_validator("url")
    @classmethod
    def _valid_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("url must not be empty")
        return value

    def identity(self) -> ApplicationIdentity:
        return ApplicationIdentity(name=self.name, url=self.url, pid=self.pid)


class BrowserSettings(BaseModel):
    """Contents of weblet.json."""

    browser: str = ""
    engine: Engine = "browser"
