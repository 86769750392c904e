"""
Catalog Client - master data lookups used by the stock ledger

The ledger never mutates master data. It only asks whether a product or
warehouse exists and what a product's reorder threshold is.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Set

import requests
from flask import current_app

from stock_ledger.api.middlewares import outgoing_headers
from stock_ledger.exceptions import CollaboratorUnavailableError

logger = logging.getLogger(__name__)


class CatalogClient(ABC):
    """Abstract product/warehouse lookup"""

    @abstractmethod
    def product_exists(self, product_id: str) -> bool:
        pass

    @abstractmethod
    def warehouse_exists(self, warehouse_id: str) -> bool:
        pass

    @abstractmethod
    def get_reorder_threshold(self, product_id: str) -> Optional[int]:
        """Minimum stock for the product, None when it has none configured"""
        pass


class InMemoryCatalog(CatalogClient):
    """
    Catalog held in process memory.

    With ``accept_unknown`` every identifier is treated as known and gets the
    default reorder threshold, which suits a ledger running without a master
    data service.
    """

    def __init__(self, default_reorder_threshold: Optional[int] = 10, accept_unknown: bool = False):
        self.default_reorder_threshold = default_reorder_threshold
        self.accept_unknown = accept_unknown
        self._products: Dict[str, Optional[int]] = {}
        self._warehouses: Set[str] = set()

    def add_product(self, product_id: str, reorder_threshold: Optional[int] = None):
        if reorder_threshold is None:
            reorder_threshold = self.default_reorder_threshold
        self._products[product_id] = reorder_threshold
        return self

    def add_warehouse(self, warehouse_id: str):
        self._warehouses.add(warehouse_id)
        return self

    def product_exists(self, product_id: str) -> bool:
        return self.accept_unknown or product_id in self._products

    def warehouse_exists(self, warehouse_id: str) -> bool:
        return self.accept_unknown or warehouse_id in self._warehouses

    def get_reorder_threshold(self, product_id: str) -> Optional[int]:
        if product_id in self._products:
            return self._products[product_id]
        if self.accept_unknown:
            return self.default_reorder_threshold
        return None


class HttpCatalogClient(CatalogClient):
    """Client for the master data service's REST API"""

    def __init__(self, base_url: str = None, timeout: float = 5):
        self._base_url = base_url
        self.timeout = timeout

    @property
    def base_url(self):
        """Get base URL, using Flask config if not provided during init"""
        if self._base_url is None:
            try:
                self._base_url = current_app.config.get('CATALOG_SERVICE_URL', 'http://localhost:3001')
            except RuntimeError:
                # Working outside application context, use default
                self._base_url = 'http://localhost:3001'
        return self._base_url.rstrip('/')

    def _get(self, path: str) -> Optional[dict]:
        """GET a resource; None on 404, CollaboratorUnavailableError on failure"""
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, headers=outgoing_headers(), timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error(f"Timeout calling catalog service at {url}")
            raise CollaboratorUnavailableError(f"Timeout calling catalog service at {url}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling catalog service at {url}: {e}")
            raise CollaboratorUnavailableError(f"Error calling catalog service at {url}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            logger.error(f"Catalog service error for {url}: {response.status_code}")
            raise CollaboratorUnavailableError(
                f"Catalog service returned {response.status_code} for {url}"
            )
        return response.json()

    def product_exists(self, product_id: str) -> bool:
        return self._get(f"/api/v1/products/{product_id}") is not None

    def warehouse_exists(self, warehouse_id: str) -> bool:
        return self._get(f"/api/v1/warehouses/{warehouse_id}") is not None

    def get_reorder_threshold(self, product_id: str) -> Optional[int]:
        product = self._get(f"/api/v1/products/{product_id}")
        if not product:
            return None
        for field in ('min_stock', 'minStock', 'reorder_level'):
            if product.get(field) is not None:
                try:
                    return int(product[field])
                except (TypeError, ValueError) as e:
                    logger.error(f"Catalog service returned a non-numeric {field} for product {product_id}")
                    raise CollaboratorUnavailableError(
                        f"Catalog service returned a non-numeric {field} for product {product_id}"
                    ) from e
        return None
