"""Elasticsearch index duplication tool.

Copies an index's schema and documents into a new index and moves an alias
onto it in a single atomic update.
"""

__version__ = "0.1.0"
