"""
Clients Module
Centralized exports for external service clients
"""

from stock_ledger.clients.catalog_client import (
    CatalogClient,
    InMemoryCatalog,
    HttpCatalogClient,
)

__all__ = [
    'CatalogClient',
    'InMemoryCatalog',
    'HttpCatalogClient',
]
