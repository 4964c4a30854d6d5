"""Built-in auth handler plugins for resli.

Each sub-package implements one :class:`~resli.auth.base.AuthHandler`:

* :mod:`~resli.plugins.basic` -- ``http-basic``
* :mod:`~resli.plugins.bearer` -- ``bearer``
* :mod:`~resli.plugins.api_key` -- ``api-key``
* :mod:`~resli.plugins.oauth2_client_credentials` -- ``oauth-client-credentials``
* :mod:`~resli.plugins.oauth2_password` -- ``oauth-password``

Third-party packages add schemes by publishing a factory under the
``resli.auth`` entry-point group; see
:func:`~resli.auth.manager.load_entry_point_handlers`.
"""
