"""Built-in CLI sub-commands for resli.

* :mod:`~resli.commands.api` -- register, inspect and sync APIs.
* :mod:`~resli.commands.cache` -- cache statistics and clearing.
* :mod:`~resli.commands.config` -- view and modify global settings.
* :mod:`~resli.commands.common` -- option resolution and client sessions
  shared by the commands above and the generic method commands in
  :mod:`resli.app`.
"""
