"""
Price table sources - the external data stores the provider reads from.

A source returns raw rows (string-keyed dicts, values as read). It does no
validation; the provider validates every row before it reaches a resolver.
"""
from pathlib import Path
from typing import Optional

import pandas as pd

from .tables import (
    BLANK_CAP, FABRIC, LOGO, CLOSURE, ACCESSORY, DELIVERY, MOLD,
)

PRODUCTS = "products"

# Table name -> CSV file shipped in data/tables/
TABLE_FILES = {
    BLANK_CAP: "price_tiers.csv",
    PRODUCTS: "products.csv",
    LOGO: "logo_methods.csv",
    MOLD: "mold_charges.csv",
    FABRIC: "fabrics.csv",
    CLOSURE: "closures.csv",
    ACCESSORY: "accessories.csv",
    DELIVERY: "delivery_methods.csv",
}


class PriceTableSource:
    """
    Read-only access to the raw pricing tables.

    Subclasses implement ``load_table``; the named loaders exist so callers
    can depend on one method per table.
    """

    def load_table(self, table: str) -> list[dict]:
        raise NotImplementedError

    def load_price_tiers(self) -> list[dict]:
        return self.load_table(BLANK_CAP)

    def load_products(self) -> list[dict]:
        return self.load_table(PRODUCTS)

    def load_logo_methods(self) -> list[dict]:
        return self.load_table(LOGO)

    def load_mold_charges(self) -> list[dict]:
        return self.load_table(MOLD)

    def load_fabrics(self) -> list[dict]:
        return self.load_table(FABRIC)

    def load_closures(self) -> list[dict]:
        return self.load_table(CLOSURE)

    def load_accessories(self) -> list[dict]:
        return self.load_table(ACCESSORY)

    def load_delivery_methods(self) -> list[dict]:
        return self.load_table(DELIVERY)

    def describe(self) -> str:
        return type(self).__name__


class CsvPriceTableSource(PriceTableSource):
    """Loads each table from a CSV file in one directory."""

    def __init__(self, tables_dir: Path):
        self.tables_dir = Path(tables_dir)

    def load_table(self, table: str) -> list[dict]:
        path = self.tables_dir / TABLE_FILES[table]
        if not path.exists():
            raise FileNotFoundError(f"{TABLE_FILES[table]} not found at {path}.")

        df = pd.read_csv(path, dtype=str, keep_default_na=False)

        # Normalize headers and cells
        df.columns = [str(c).strip() for c in df.columns]
        for col in df.columns:
            df[col] = df[col].astype(str).str.strip()

        return df.to_dict(orient="records")

    def describe(self) -> str:
        return f"csv:{self.tables_dir}"


class InMemoryPriceTableSource(PriceTableSource):
    """Serves rows held in memory; used by tests and embedding callers."""

    def __init__(self, tables: Optional[dict] = None, failing: tuple = ()):
        self.tables = {name: list(rows) for name, rows in (tables or {}).items()}
        # Tables listed here raise on load, simulating an unreachable store
        self.failing = set(failing)
        self.load_calls: dict[str, int] = {}

    def load_table(self, table: str) -> list[dict]:
        self.load_calls[table] = self.load_calls.get(table, 0) + 1
        if table in self.failing:
            raise ConnectionError(f"price table store unreachable for {table}")
        return [dict(row) for row in self.tables.get(table, [])]
