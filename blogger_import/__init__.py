"""
Top-level package for the Blogger import utility.

This package bundles the components required to read a Blogger Atom export,
rebuild its comment threads, convert post bodies to block markup, store the
result locally and produce URL mapping reports.  Modules are split into
subpackages:

* :mod:`blogger_import.models` – typed entries produced by the parser
* :mod:`blogger_import.extractors` – streaming export parser and helpers
* :mod:`blogger_import.parsers` – HTML to block converter and block markup
* :mod:`blogger_import.migrators` – local content store, id mapping, assets
* :mod:`blogger_import.utils` – reports, logging, dates, labels, redirects

Orchestration is handled in :mod:`blogger_import.import_tool`.
"""
