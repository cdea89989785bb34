"""
Showcase configuration management.

Supports loading from YAML files, environment variables, and keyword overrides.
Client credentials are only ever read from these sources.
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from xeroshowcase.errors import ConfigurationError

DEFAULT_SCOPES = [
    "openid",
    "profile",
    "email",
    "accounting.settings",
    "accounting.reports.read",
    "accounting.journals.read",
    "accounting.contacts",
    "accounting.attachments",
    "accounting.transactions",
    "offline_access",
]


class XeroConfig(BaseModel):
    """OAuth2 client registration and Xero endpoints."""

    client_id: str | None = Field(default=None, description="OAuth2 client id (CLIENT_ID)")
    client_secret: str | None = Field(default=None, description="OAuth2 client secret (CLIENT_SECRET)")
    redirect_uri: str | None = Field(default=None, description="Registered callback URL (REDIRECT_URI)")
    scopes: list[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))

    authorize_url: str = "https://login.xero.com/identity/connect/authorize"
    token_url: str = "https://identity.xero.com/connect/token"
    connections_url: str = "https://api.xero.com/connections"
    api_url: str = "https://api.xero.com/api.xro/2.0"

    def missing_credentials(self) -> list[str]:
        """Names of the required settings that are unset."""
        required = {
            "CLIENT_ID": self.client_id,
            "CLIENT_SECRET": self.client_secret,
            "REDIRECT_URI": self.redirect_uri,
        }
        return [name for name, value in required.items() if not value]


class ServerConfig(BaseModel):
    """Web server and session cookie settings."""

    host: str = "127.0.0.1"
    port: int = Field(default=5000, ge=1, le=65535)
    session_secret: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Key signing the session cookie (random per process if unset)",
    )
    session_cookie: str = "xeroshowcase_session"
    session_max_age: int = Field(default=14 * 24 * 60 * 60, ge=1)
    log_level: str = "INFO"


class ShowcaseConfig(BaseModel):
    """Root configuration."""

    xero: XeroConfig = Field(default_factory=XeroConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    http_timeout: float = Field(default=30.0, gt=0, description="Upstream request timeout in seconds")

    def require_credentials(self) -> XeroConfig:
        """Return the Xero section, or raise if client credentials are incomplete."""
        missing = self.xero.missing_credentials()
        if missing:
            raise ConfigurationError(
                "Environment variables not all set: "
                + ", ".join(missing)
                + ". Check your .env file or config."
            )
        return self.xero

    @classmethod
    def load(cls, config_path: str | None = None, **overrides: Any) -> ShowcaseConfig:
        """Load configuration from file, env vars, and overrides.

        Priority: overrides > env vars > config file > defaults.
        """
        data: dict[str, Any] = {}

        # 1. Load from YAML file if provided
        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    data = yaml.safe_load(f) or {}

        # 2. Override from environment variables
        xero = data.get("xero") or {}
        for env_name, key in (
            ("CLIENT_ID", "client_id"),
            ("CLIENT_SECRET", "client_secret"),
            ("REDIRECT_URI", "redirect_uri"),
        ):
            value = os.environ.get(env_name)
            if value:
                xero[key] = value

        env_scopes = os.environ.get("XERO_SCOPES")
        if env_scopes:
            xero["scopes"] = env_scopes.split()
        data["xero"] = xero

        server = data.get("server") or {}
        env_secret = os.environ.get("SESSION_SECRET")
        env_port = os.environ.get("PORT")
        env_level = os.environ.get("LOG_LEVEL")
        if env_secret:
            server["session_secret"] = env_secret
        if env_port:
            server["port"] = int(env_port)
        if env_level:
            server["log_level"] = env_level.upper()
        data["server"] = server

        # 3. Apply keyword overrides
        data.update(overrides)

        return cls.model_validate(data)
