"""TLS assembly: SSL contexts, hardware-token certificates and lazy transports.

Per-API TLS material comes from the profile (``APIConfig.tls``) and is
overridden field by field by CLI flags (``--insecure``, ``--client-cert``,
``--client-key``, ``--ca-cert``); see :func:`effective_tls`.

Hardware tokens (PKCS#11) are handled by :class:`HardwareTokenProvider`.
Loading key material from a token may need a PIN, so the provider is only
consulted when a TLS connection is actually opened. The PIN is asked for
at most once per process, and the loaded material is memoized per
``(module path, label)``.

Python's :mod:`ssl` module cannot talk to PKCS#11 directly. A token
backend is therefore discovered through the ``resli.token_backends``
entry-point group; it receives the module path, label and PIN and returns
file paths that :meth:`ssl.SSLContext.load_cert_chain` can read.
"""

from __future__ import annotations

import getpass
import importlib.metadata
import os
import ssl
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol

import httpx

from resli.exceptions import TLSConfigError
from resli.models import PKCS11Config, RequestOptions, TLSConfig
from resli.output import debug, warning

TOKEN_BACKEND_GROUP = "resli.token_backends"
PIN_ENV_VAR = "RESLI_PKCS11_PIN"

# Common install locations of the OpenSC PKCS#11 module.
DEFAULT_PKCS11_PATHS = (
    "/usr/lib/x86_64-linux-gnu/opensc-pkcs11.so",
    "/usr/lib/opensc-pkcs11.so",
    "/usr/local/lib/opensc-pkcs11.so",
    "/usr/local/lib/pkcs11/opensc-pkcs11.so",
    "/opt/homebrew/lib/opensc-pkcs11.so",
    "/Library/OpenSC/lib/opensc-pkcs11.so",
)


@dataclass(frozen=True)
class ClientCertificate:
    """Certificate material in a form :mod:`ssl` can load."""

    certfile: str
    keyfile: Optional[str] = None
    password: Optional[str] = None


class TokenBackend(Protocol):
    def load(self, module_path: str, label: str, pin: str) -> ClientCertificate: ...


def effective_tls(api_tls: Optional[TLSConfig], options: RequestOptions) -> TLSConfig:
    """Merge profile TLS material with CLI overrides (CLI wins)."""
    base = api_tls or TLSConfig()
    return base.model_copy(update=options.tls_overrides())


def prompt_pin(label: str) -> str:
    """Read the token PIN from the environment or an interactive prompt.

    Raises:
        TLSConfigError: If no PIN is set and stdin is not a TTY.
    """
    pin = os.environ.get(PIN_ENV_VAR)
    if pin:
        return pin
    if not sys.stdin.isatty():
        raise TLSConfigError(
            f"Hardware token '{label}' needs a PIN: set {PIN_ENV_VAR} or run interactively"
        )
    return getpass.getpass(f"PIN for hardware token '{label}': ")


def load_token_backend() -> TokenBackend:
    """Instantiate the first backend published under ``resli.token_backends``.

    Raises:
        TLSConfigError: If no backend is installed.
    """
    for ep in importlib.metadata.entry_points().select(group=TOKEN_BACKEND_GROUP):
        debug(f"Using hardware token backend '{ep.name}'")
        return ep.load()()
    raise TLSConfigError(
        "PKCS#11 client certificates need a token backend installed "
        f"under the '{TOKEN_BACKEND_GROUP}' entry-point group"
    )


def find_pkcs11_module() -> Optional[str]:
    for candidate in DEFAULT_PKCS11_PATHS:
        if Path(candidate).is_file():
            return candidate
    return None


class HardwareTokenProvider:
    """Lazily loads and memoizes client certificate material from a token.

    Args:
        config: Token descriptor from the profile.
        pin_source: Called with the token label to obtain the PIN.
        backend: Explicit backend; discovered via entry points when omitted.
    """

    def __init__(
        self,
        config: PKCS11Config,
        pin_source: Callable[[str], str] = prompt_pin,
        backend: Optional[TokenBackend] = None,
    ) -> None:
        self._config = config
        self._pin_source = pin_source
        self._backend = backend
        self._material: Optional[ClientCertificate] = None

    @property
    def loaded(self) -> bool:
        return self._material is not None

    def certificate(self) -> ClientCertificate:
        """Return the certificate material, loading it on first use."""
        if self._material is None:
            module_path = self._config.path or find_pkcs11_module()
            if not module_path:
                raise TLSConfigError("No PKCS#11 module path configured and none found")
            pin = self._pin_source(self._config.label)
            backend = self._backend or load_token_backend()
            self._material = backend.load(module_path, self._config.label, pin)
        return self._material

    def apply(self, context: ssl.SSLContext) -> None:
        """Load the token's certificate chain into *context*."""
        material = self.certificate()
        try:
            context.load_cert_chain(material.certfile, material.keyfile, material.password)
        except (OSError, ssl.SSLError) as exc:
            raise TLSConfigError(f"Cannot load hardware token certificate: {exc}") from exc


_providers: dict[tuple[Optional[str], str], HardwareTokenProvider] = {}


def get_token_provider(config: PKCS11Config) -> HardwareTokenProvider:
    """Process-wide provider for *config*, so the PIN is requested once."""
    key = (config.path, config.label)
    if key not in _providers:
        _providers[key] = HardwareTokenProvider(config)
    return _providers[key]


def build_ssl_context(
    tls: TLSConfig,
    token_provider: Optional[HardwareTokenProvider] = None,
) -> ssl.SSLContext:
    """Build the SSL context for *tls*.

    Order: system trust store, insecure override, hardware token
    certificate, certificate/key pair, extra CA bundle.

    Raises:
        TLSConfigError: If certificate files cannot be loaded.
    """
    context = ssl.create_default_context()

    if tls.insecure:
        warning("Disabling TLS security checks")
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    if tls.pkcs11 is not None:
        (token_provider or get_token_provider(tls.pkcs11)).apply(context)

    if tls.cert:
        try:
            context.load_cert_chain(tls.cert, tls.key)
        except (OSError, ssl.SSLError) as exc:
            raise TLSConfigError(f"Cannot load client certificate {tls.cert}: {exc}") from exc
    elif tls.key:
        raise TLSConfigError("A client key was given without a client certificate")

    if tls.ca_cert:
        try:
            context.load_verify_locations(cafile=tls.ca_cert)
        except (OSError, ssl.SSLError) as exc:
            raise TLSConfigError(f"Cannot load CA certificate {tls.ca_cert}: {exc}") from exc

    return context


class LazyTLSTransport(httpx.BaseTransport):
    """Create the HTTPS transport (and its SSL context) on first use.

    Plain ``http`` requests go through a transport without client
    certificates, so a hardware token is never touched for them.

    Args:
        tls: Effective TLS material.
        transport_factory: Called with ``verify=<context or True>``; defaults
            to :class:`httpx.HTTPTransport`.
    """

    def __init__(
        self,
        tls: TLSConfig,
        token_provider: Optional[HardwareTokenProvider] = None,
        transport_factory: Callable[..., httpx.BaseTransport] = httpx.HTTPTransport,
    ) -> None:
        self._tls = tls
        self._token_provider = token_provider
        self._factory = transport_factory
        self._https: Optional[httpx.BaseTransport] = None
        self._http: Optional[httpx.BaseTransport] = None

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if request.url.scheme == "https":
            if self._https is None:
                self._https = self._factory(verify=build_ssl_context(self._tls, self._token_provider))
            return self._https.handle_request(request)
        if self._http is None:
            self._http = self._factory(verify=True)
        return self._http.handle_request(request)

    def close(self) -> None:
        for transport in (self._https, self._http):
            if transport is not None:
                transport.close()
