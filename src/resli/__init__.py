"""resli -- a generic command-line client for HTTP APIs.

resli sends requests to any HTTP API and takes care of the tedious parts:
profile defaults, authentication, TLS client certificates, HTTP caching,
retries with server-supplied backoff, content negotiation, hypermedia link
extraction and auto-pagination.

Typical workflow::

    resli api add example https://api.example.com --auth bearer --param 'token=$TOKEN'
    resli get example/items
    resli post example/items '{"name": "widget"}'

Modules:
    app: Typer application and CLI entry point.
    client: Request enrichment, retry, decoding and pagination.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and option resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
