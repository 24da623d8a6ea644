"""
Price Table Provider - validated, read-only snapshot of the pricing tables.

Tables are loaded lazily, one at a time, on first use. A load that fails is
served from the compiled-in fallback table when one exists (tagged
"fallback") until ``fallback_retry_seconds`` pass, then the source is tried
again; otherwise it raises DataSourceUnavailableError and is retried on the
next access.
"""
import logging
import threading
import time
from typing import Callable, Optional

from ..errors import DataSourceUnavailableError, PriceTableValidationError
from .fallback import FALLBACK_TABLES
from .sources import PriceTableSource, PRODUCTS
from .tables import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD,
    CategoryTable, normalize_key,
)
from .validation import RowError, validate_rows

logger = logging.getLogger(__name__)

# Table name -> PriceTableSource loader method
LOADERS = {
    BLANK_CAP: "load_price_tiers",
    PRODUCTS: "load_products",
    LOGO: "load_logo_methods",
    MOLD: "load_mold_charges",
    FABRIC: "load_fabrics",
    CLOSURE: "load_closures",
    ACCESSORY: "load_accessories",
    DELIVERY: "load_delivery_methods",
}

ALL_TABLES = tuple(LOADERS)


class PriceTableProvider:
    """
    Typed access to the pricing tables of one source.

    Args:
        source: external store the raw rows come from
        use_fallback: serve compiled-in tables when the store is unreachable
        strict: reject a whole table when any of its rows fails validation
        fallback_retry_seconds: how long a fallback table is served before the
            source is read again
        clock: time source, injectable for tests
    """

    def __init__(
        self,
        source: PriceTableSource,
        use_fallback: bool = True,
        strict: bool = False,
        fallback_retry_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.use_fallback = use_fallback
        self.strict = strict
        self.fallback_retry_seconds = fallback_retry_seconds
        self.clock = clock
        self._fallback_until: dict[str, float] = {}
        self.validation_errors: dict[str, list[RowError]] = {}
        self._tables: dict[str, CategoryTable] = {}
        self._locks = {name: threading.Lock() for name in ALL_TABLES}

    def table(self, name: str) -> CategoryTable:
        """Return the validated table, loading it on first access."""
        loaded = self._tables.get(name)
        if loaded is not None and not self._fallback_expired(name):
            return loaded

        with self._locks[name]:
            loaded = self._tables.get(name)
            if loaded is None or self._fallback_expired(name):
                loaded = self._load(name)
                self._tables[name] = loaded
                if loaded.source == "fallback":
                    self._fallback_until[name] = self.clock() + self.fallback_retry_seconds
                else:
                    self._fallback_until.pop(name, None)
            return loaded

    def _fallback_expired(self, name: str) -> bool:
        until = self._fallback_until.get(name)
        return until is not None and self.clock() >= until

    def _load(self, name: str) -> CategoryTable:
        loader = getattr(self.source, LOADERS[name])
        try:
            raw_rows = loader()
        except Exception as e:
            fallback = FALLBACK_TABLES.get(name) if self.use_fallback else None
            if fallback is None:
                logger.error("Price table %s unavailable from %s: %s", name, self.source.describe(), e)
                raise DataSourceUnavailableError(
                    f"Price table '{name}' could not be loaded: {e}",
                    category=name,
                ) from e
            logger.warning(
                "Price table %s unavailable from %s (%s); serving %d fallback rows",
                name, self.source.describe(), e, len(fallback),
            )
            return CategoryTable.from_rows(name, fallback, source="fallback")

        report = validate_rows(name, raw_rows, mold_sizes=self._mold_sizes() if name == LOGO else None)
        self.validation_errors[name] = report.errors
        if report.errors and self.strict:
            raise PriceTableValidationError(report.errors)

        logger.info("Loaded %d %s rows (%d rejected)", len(report.rows), name, len(report.errors))
        return CategoryTable.from_rows(name, report.rows)

    def _mold_sizes(self) -> Optional[set]:
        """Normalized mold charge sizes, or None when the mold table is unavailable."""
        try:
            return {normalize_key(row.size) for row in self.table(MOLD)}
        except DataSourceUnavailableError as e:
            logger.warning("Logo mold references not checked: %s", e.message)
            return None

    def load_all(self) -> dict[str, Optional[str]]:
        """
        Load every table.

        Returns a map of table name -> error message (None when loaded).
        """
        results = {}
        for name in ALL_TABLES:
            try:
                self.table(name)
                results[name] = None
            except DataSourceUnavailableError as e:
                results[name] = e.message
        return results

    def reload(self, names: Optional[tuple] = None) -> tuple:
        """Drop loaded tables so the next access reads the source again."""
        names = tuple(names or ALL_TABLES)
        for name in names:
            with self._locks[name]:
                self._tables.pop(name, None)
                self._fallback_until.pop(name, None)
                self.validation_errors.pop(name, None)
        logger.info("Price tables marked for reload: %s", ", ".join(names))
        return names

    def status(self) -> dict:
        status = {}
        for name in ALL_TABLES:
            loaded = self._tables.get(name)
            status[name] = {
                "loaded": loaded is not None,
                "source": loaded.source if loaded is not None else None,
                "rows": len(loaded) if loaded is not None else 0,
                "rejected_rows": [str(e) for e in self.validation_errors.get(name, [])],
            }
        return status
