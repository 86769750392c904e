"""
Stock ledger wiring - one storage, catalog, engine and query service per app
"""

import logging
from typing import Optional

from flask import current_app

from stock_ledger.clients import CatalogClient, HttpCatalogClient, InMemoryCatalog
from stock_ledger.repositories import LedgerStorage, MemoryStorage, SqlStorage
from stock_ledger.services import (
    KeyLockRegistry, MovementEngine, NumberingService, StockQueryService
)

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'stock_ledger'


class StockLedger:
    """Everything a caller needs to move and query stock"""

    def __init__(self, storage: LedgerStorage, catalog: CatalogClient,
                 out_costing_policy: str = 'caller', transaction_no_prefix: str = 'TXN'):
        self.storage = storage
        self.catalog = catalog
        self.numbering = NumberingService(prefix=transaction_no_prefix)
        self.locks = KeyLockRegistry()
        self.engine = MovementEngine(
            storage, catalog,
            numbering=self.numbering,
            locks=self.locks,
            out_costing_policy=out_costing_policy,
        )
        self.queries = StockQueryService(storage, catalog)

    def open(self):
        self.storage.open()
        return self

    def close(self):
        self.storage.close()


def build_storage(backend: str) -> LedgerStorage:
    backend = (backend or 'sql').lower()
    if backend == 'memory':
        return MemoryStorage()
    if backend == 'sql':
        return SqlStorage()
    raise ValueError(f"Unknown ledger storage backend: {backend}")


def build_catalog(config) -> CatalogClient:
    url = config.get('CATALOG_SERVICE_URL')
    if url:
        return HttpCatalogClient(url, timeout=config.get('CATALOG_TIMEOUT_SECONDS', 5))
    # No master data service: accept every identifier
    return InMemoryCatalog(
        default_reorder_threshold=config.get('DEFAULT_REORDER_THRESHOLD', 10),
        accept_unknown=True,
    )


def build_ledger_from_config(config, catalog: Optional[CatalogClient] = None) -> StockLedger:
    """Build an open ledger from a Flask config mapping"""
    ledger = StockLedger(
        storage=build_storage(config.get('LEDGER_STORAGE', 'sql')),
        catalog=catalog or build_catalog(config),
        out_costing_policy=config.get('OUT_COSTING_POLICY', 'caller'),
        transaction_no_prefix=config.get('TRANSACTION_NO_PREFIX', 'TXN'),
    )
    return ledger.open()


def init_ledger(app, catalog: Optional[CatalogClient] = None) -> StockLedger:
    """Attach a ledger to the app"""
    ledger = build_ledger_from_config(app.config, catalog=catalog)
    app.extensions[EXTENSION_KEY] = ledger
    logger.info(
        f"Stock ledger ready (storage={ledger.storage.name}, "
        f"catalog={type(ledger.catalog).__name__}, "
        f"out costing={ledger.engine.out_costing_policy.value})"
    )
    return ledger


def get_ledger() -> StockLedger:
    """Ledger of the current Flask app"""
    return current_app.extensions[EXTENSION_KEY]
