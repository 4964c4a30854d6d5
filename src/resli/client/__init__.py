"""HTTP client module for resli.

Turns a logical "call this URL" into an authenticated, cached, retried
exchange whose body is decoded, whose links are resolved and whose pages
are merged.

Classes:
    :class:`SyncClient` -- the blocking client facade.
    :class:`RequestEnricher` -- request assembly from profile and flags.
    :class:`RetryExecutor` -- bounded retry around one exchange.
    :class:`Response` -- the decoded response handed to the formatter.

Example::

    from resli.client import SyncClient

    with SyncClient(options, apis) as client:
        resp = client.get_parsed_response("GET", "https://api.example.com/items")
"""

from resli.client.enricher import RequestEnricher
from resli.client.pagination import paginate
from resli.client.registries import Registries, create_default_registries
from resli.client.response import Response, check_status, format_api_response, parse_response
from resli.client.retry import RetryExecutor, RetryPolicy
from resli.client.sync_client import SyncClient

__all__ = [
    "Registries",
    "RequestEnricher",
    "Response",
    "RetryExecutor",
    "RetryPolicy",
    "SyncClient",
    "check_status",
    "create_default_registries",
    "format_api_response",
    "paginate",
    "parse_response",
]
