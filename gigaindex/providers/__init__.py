"""Concrete adapters for the interfaces in :mod:`gigaindex.interfaces`.

    annotation/   -- JsonAnnotationCodec, NLTKAnnotationEngine
    index_store/  -- SQLiteIndexStore
"""
