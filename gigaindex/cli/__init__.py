"""Command-line tools for gigaindex.

- ``gigaindex index`` -- parse a raw corpus and build an index
- ``gigaindex reindex-query`` -- annotate the hits of a query into a new index
- ``gigaindex export`` -- dump the text of one document type to a flat file
- ``gigaindex stats`` -- summarize an existing index

``python -m gigaindex.cli`` is equivalent to the ``gigaindex`` script.
"""
