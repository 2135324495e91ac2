"""
Celery Task Modules

Background tasks:
- search.py: Debounced search index builds (embeddings + search vectors)
"""

from folio.tasks.search import build_search_index

__all__ = [
    "build_search_index",
]
