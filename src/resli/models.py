"""Canonical Pydantic models shared across all resli modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`AuthConfig`, :class:`PKCS11Config`, :class:`TLSConfig`,
    :class:`APIProfile`, :class:`APIConfig`, :class:`CacheConfig`,
    :class:`RetryConfig`, and :class:`GlobalConfig`.

**Per-invocation models** -- built from CLI flags and environment variables
and never persisted:
    :class:`RequestOptions`.

All models use Pydantic v2. Auth params are free-form string maps because
each auth handler declares its own parameter names.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- API configuration (apis.json) ---


class AuthConfig(BaseModel):
    """Auth descriptor embedded in an :class:`APIProfile`.

    ``name`` selects a handler registered in the
    :class:`~resli.auth.manager.AuthRegistry` and ``params`` are passed to
    it verbatim.

    Example::

        AuthConfig(
            name="oauth-client-credentials",
            params={
                "client_id": "abc",
                "client_secret": "s3cret",
                "token_url": "https://auth.example.com/token",
            },
        )
    """

    name: str = Field(description="Registered auth scheme name")
    params: dict[str, str] = Field(default_factory=dict)


class PKCS11Config(BaseModel):
    """Hardware token (PKCS#11) descriptor used for client certificates."""

    path: Optional[str] = Field(
        default=None, description="Path to the PKCS#11 module library"
    )
    label: str = Field(description="Label of the certificate/key pair on the token")


class TLSConfig(BaseModel):
    """TLS material for an API. CLI flags override every field."""

    insecure: bool = Field(default=False, description="Skip certificate verification")
    cert: Optional[str] = Field(default=None, description="Client certificate path")
    key: Optional[str] = Field(default=None, description="Client private key path")
    ca_cert: Optional[str] = Field(
        default=None, description="Extra CA bundle appended to the system pool"
    )
    pkcs11: Optional[PKCS11Config] = None


class APIProfile(BaseModel):
    """Named set of defaults applied to every request sent to an API."""

    model_config = ConfigDict(extra="allow")

    base: Optional[str] = Field(default=None, description="Override base URL")
    headers: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    auth: Optional[AuthConfig] = None


class APIConfig(BaseModel):
    """One configured API, stored under its short name in ``apis.json``.

    See Also:
        :func:`~resli.config.load_apis`: Deserialise every configured API.
        :func:`~resli.config.find_api`: Match a URL to its API.
    """

    model_config = ConfigDict(extra="allow")

    base: str
    spec_files: list[str] = Field(default_factory=list)
    profiles: dict[str, APIProfile] = Field(default_factory=dict)
    tls: Optional[TLSConfig] = None


# --- Global configuration (config.json) ---


class CacheConfig(BaseModel):
    """HTTP response cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable response caching")
    min_ttl_seconds: int = Field(
        default=86400,
        description="Freshness floor for API descriptions without cache headers",
    )


class RetryConfig(BaseModel):
    """Default retry policy stored in :class:`GlobalConfig`."""

    retries: int = Field(default=2, ge=0, description="Retries after the first attempt")
    default_backoff: float = Field(
        default=1.0, ge=0, description="Seconds to wait when the server gives no hint"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/resli/config.json``.

    Fields here have the lowest precedence and can be overridden by
    environment variables or CLI flags. See
    :func:`~resli.config.resolve_options` for the full precedence chain.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    timeout: Optional[float] = Field(
        default=None, description="Per-attempt timeout in seconds"
    )
    user_agent: Optional[str] = None


# --- Per-invocation options ---


class RequestOptions(BaseModel):
    """Effective per-invocation request settings.

    Built by :func:`~resli.config.resolve_options` from CLI flags,
    environment variables and :class:`GlobalConfig`. ``headers`` and
    ``query`` keep the raw ``Name: value`` / ``name=value`` strings so that
    repeated names are preserved.
    """

    profile: str = "default"
    headers: list[str] = Field(default_factory=list)
    query: list[str] = Field(default_factory=list)
    no_cache: bool = False
    no_paginate: bool = False
    fail_on_status: bool = False
    timeout: Optional[float] = None
    retries: int = 2
    default_backoff: float = 1.0
    insecure: bool = False
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    ca_cert: Optional[str] = None
    user_agent: Optional[str] = None

    def tls_overrides(self) -> dict[str, Any]:
        """Return the TLS-related fields that were set on the command line."""
        values: dict[str, Any] = {}
        if self.insecure:
            values["insecure"] = True
        if self.client_cert:
            values["cert"] = self.client_cert
        if self.client_key:
            values["key"] = self.client_key
        if self.ca_cert:
            values["ca_cert"] = self.ca_cert
        return values
