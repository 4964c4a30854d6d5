"""HTTP Basic auth handler.

Implements the ``http-basic`` scheme, which encodes a ``username`` and
``password`` pair using Base64 and sends it as an ``Authorization: Basic``
header per :rfc:`7617`.
"""

from resli.plugins.basic.plugin import BasicAuthHandler

__all__ = ["BasicAuthHandler"]
