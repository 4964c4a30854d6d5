"""Assemble one outgoing request from profile defaults and CLI overrides.

Layering, lowest precedence first:

1. Headers and query parameters already on the request.
2. Profile defaults, added only for names not already present. Header
   values are expanded for ``$ENV_VARS``.
3. ``-H``/``-q`` values from the command line, always appended so that a
   profile default and a CLI override of the same name both reach the
   server.
4. Auth injection by the profile's auth scheme.
5. ``User-Agent``, ``Accept``, ``Accept-Encoding`` and a JSON
   ``Content-Type`` for bodies, each only when missing.
"""

from __future__ import annotations

import os
from typing import Callable, Optional

import httpx

from resli import __version__
from resli.auth.manager import AuthRegistry
from resli.config import find_api
from resli.content import ContentTypeRegistry
from resli.encoding import EncodingRegistry
from resli.exceptions import InvalidUsageError
from resli.models import APIConfig, APIProfile, RequestOptions
from resli.output import debug

DEFAULT_CONTENT_TYPE = "application/json; charset=utf-8"


def split_header(raw: str) -> tuple[str, str]:
    """``"Name: value"`` -> ``("Name", "value")``. A missing value is empty."""
    name, _, value = raw.partition(":")
    return name.strip(), value.strip()


def split_query(raw: str) -> tuple[str, str]:
    """``"name=value"`` -> ``("name", "value")``. A missing value is empty."""
    name, _, value = raw.partition("=")
    return name, value


class RequestEnricher:
    """Turns ``(method, url, body)`` into a fully-formed :class:`httpx.Request`.

    Args:
        apis: Configured APIs, used to find the profile for a URL.
        options: Effective per-invocation options.
        auth: Registry used to run the profile's auth scheme.
        codecs: Codec registry that provides the ``Accept`` header.
        encodings: Encoding registry that provides ``Accept-Encoding``.
        transport_for: Returns the base transport for ``(name, api)``; it
            is handed to the auth scheme for its own side requests.
    """

    def __init__(
        self,
        apis: dict[str, APIConfig],
        options: RequestOptions,
        auth: AuthRegistry,
        codecs: ContentTypeRegistry,
        encodings: EncodingRegistry,
        transport_for: Optional[Callable[[str, Optional[APIConfig]], httpx.BaseTransport]] = None,
    ) -> None:
        self._apis = apis
        self._options = options
        self._auth = auth
        self._codecs = codecs
        self._encodings = encodings
        self._transport_for = transport_for

    @property
    def user_agent(self) -> str:
        return self._options.user_agent or f"resli-{__version__}"

    def select(self, url: str) -> tuple[str, Optional[APIConfig], APIProfile]:
        """Find the API and active profile for *url*.

        URLs outside every configured API use an empty default profile.

        Raises:
            InvalidUsageError: If a non-default profile was requested but
                the API does not define it.
        """
        profile_name = self._options.profile
        match = find_api(url, self._apis, profile_name)
        name, api = match if match is not None else ("", None)

        profile = api.profiles.get(profile_name) if api is not None else None
        if profile is None:
            if profile_name != "default":
                raise InvalidUsageError(f"Invalid profile '{profile_name}'")
            profile = APIProfile()
        return name, api, profile

    def build(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        ignore_cli_params: bool = False,
    ) -> httpx.Request:
        """Build the request for *method* and *url*.

        Args:
            method: HTTP method.
            url: Absolute URL, possibly with a query string.
            content: Raw request body. Buffered so retries replay it.
            headers: Explicit headers from the caller.
            ignore_cli_params: Apply profile defaults but skip ``-H``/``-q``
                (used for API description fetches).

        Raises:
            InvalidUsageError: For an unknown profile.
            AuthError: If the auth scheme fails; the request is never sent.
        """
        name, api, profile = self.select(url)
        target = httpx.URL(url)

        header_list = list(httpx.Headers(headers or {}).multi_items())
        present = {key.lower() for key, _ in header_list}
        for key, value in profile.headers.items():
            if key.lower() not in present:
                header_list.append((key, os.path.expandvars(value)))
                present.add(key.lower())

        query_list = list(target.params.multi_items())
        present_query = {key for key, _ in query_list}
        for key, value in profile.query.items():
            if key not in present_query:
                query_list.append((key, value))
                present_query.add(key)

        if not ignore_cli_params:
            header_list.extend(split_header(raw) for raw in self._options.headers)
            query_list.extend(split_query(raw) for raw in self._options.query)

        target = target.copy_with(params=httpx.QueryParams(query_list))
        request = httpx.Request(method.upper(), target, headers=header_list, content=content)

        transport = None
        if profile.auth is not None and self._transport_for is not None:
            transport = self._transport_for(name, api)
        self._auth.apply(request, f"{name}:{self._options.profile}", profile.auth, transport)

        if "user-agent" not in request.headers:
            request.headers["User-Agent"] = self.user_agent
        if "accept" not in request.headers:
            request.headers["Accept"] = self._codecs.accept_header()
        if "accept-encoding" not in request.headers:
            request.headers["Accept-Encoding"] = self._encodings.accept_header()
        if content is not None and "content-type" not in request.headers:
            request.headers["Content-Type"] = DEFAULT_CONTENT_TYPE

        debug(f"Built {request.method} {request.url} for API '{name or '-'}'")
        return request
