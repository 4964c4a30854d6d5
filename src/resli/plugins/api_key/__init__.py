"""Static API key auth handler (``api-key`` scheme).

Sends a key either as a request header or as a query parameter.
"""

from resli.plugins.api_key.plugin import APIKeyAuthHandler

__all__ = ["APIKeyAuthHandler"]
