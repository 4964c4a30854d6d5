"""API description discovery.

Finds an API's OpenAPI (or Swagger) document from local files, ``Link``
relations on the API root, or well-known paths, and caches it in the
state store so later invocations skip the network.

Typical usage::

    from resli.parser import load_api_description

    description = load_api_description(name, api, client, state, min_ttl=86400)
"""

from resli.parser.loader import (
    description_version,
    is_description,
    list_operations,
    load_api_description,
)

__all__ = ["description_version", "is_description", "list_operations", "load_api_description"]
