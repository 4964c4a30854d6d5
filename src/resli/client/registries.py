"""Explicit registry bundle handed to the client.

Codecs, encodings, link parsers and auth schemes all live in registry
objects rather than module globals, so a test can build a client with
exactly the registries it needs.
"""

from __future__ import annotations

from dataclasses import dataclass

from resli.auth.manager import AuthRegistry, create_default_registry as create_auth_registry
from resli.auth.token_cache import TokenCache
from resli.content import ContentTypeRegistry, create_default_registry as create_codec_registry
from resli.encoding import EncodingRegistry
from resli.links import LinkResolver, create_default_resolver


@dataclass
class Registries:
    codecs: ContentTypeRegistry
    encodings: EncodingRegistry
    links: LinkResolver
    auth: AuthRegistry


def create_default_registries(tokens: TokenCache, load_plugins: bool = True) -> Registries:
    """Registries pre-loaded with every built-in codec, parser and scheme."""
    return Registries(
        codecs=create_codec_registry(),
        encodings=EncodingRegistry(),
        links=create_default_resolver(),
        auth=create_auth_registry(tokens, load_plugins=load_plugins),
    )
