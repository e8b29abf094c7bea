"""
Catalog registry - per-feature configuration.

A catalog bundles what one admin feature hands to the engine: its field
registry, searchable fields, column catalog, sort aliases, facet fields,
date field and rule presets. The registry stores catalogs by name:

- Built-in catalogs (customers, segments, bundles)
- Catalogs loaded from YAML files
- Programmatic registration

Example:
    registry = CatalogRegistry()
    customers = registry.get("customers")

    view = customers.default_view().with_rule_group(customers.preset("high-value"))
    page = customers.pipeline().run(records, view)
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from rulekit.columns import Column, default_visible, project
from rulekit.errors import CatalogNotFoundError
from rulekit.fields import FieldRegistry
from rulekit.parser import CatalogParser, parse_catalogs_file
from rulekit.pipeline import CollectionPipeline
from rulekit.rules import RuleGroup, RulePreset, apply_preset
from rulekit.view import ViewDescription

logger = logging.getLogger(__name__)


@dataclass
class Catalog:
    """Configuration of one feature's list view and rule builder."""
    name: str
    registry: FieldRegistry
    description: str = ""
    searchable_fields: List[str] = field(default_factory=list)
    date_field: Optional[str] = None
    facet_fields: List[str] = field(default_factory=list)
    columns: List[Column] = field(default_factory=list)
    sort_aliases: Dict[str, str] = field(default_factory=dict)
    default_sort: str = ""
    presets: List[RulePreset] = field(default_factory=list)

    def pipeline(self) -> CollectionPipeline:
        return CollectionPipeline.from_catalog(self)

    def default_view(self, page_size: int = 10) -> ViewDescription:
        """A fresh view: default sort, default columns, first page."""
        return ViewDescription(
            sort_token=self.default_sort,
            page_size=page_size,
            visible_columns=default_visible(self.columns),
        )

    def visible_columns(self, view: ViewDescription) -> List[Column]:
        return project(self.columns, view.visible_columns)

    def preset(self, name: str) -> RuleGroup:
        """Rule group of a preset; unknown names give an empty group."""
        return apply_preset(self.presets, name)

    def preset_names(self) -> List[str]:
        return [p.name for p in self.presets]


class CatalogRegistry:
    """
    Registry for named catalogs.

    Definitions are parsed lazily on first access, so catalogs may extend
    catalogs registered later in the same file.
    """

    def __init__(self, builtins: bool = True):
        self._catalogs: Dict[str, Catalog] = {}
        self._definitions: Dict[str, Dict[str, Any]] = {}
        self._metadata: Dict[str, Dict[str, Any]] = {}
        self._parser = CatalogParser(self)

        if builtins:
            self._register_builtins()

    def _register_builtins(self):
        """Register built-in catalogs."""
        for name, definition in BUILTIN_CATALOGS.items():
            self.register_definition(name, copy.deepcopy(definition), metadata={"builtin": True})

    def register(
        self,
        catalog: Catalog,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Register an already-built catalog."""
        self._catalogs[catalog.name] = catalog
        self._definitions.pop(catalog.name, None)
        self._metadata[catalog.name] = metadata or {"description": catalog.description}

    def register_definition(
        self,
        name: str,
        definition: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Register a catalog definition (parsed on first access).

        Args:
            name: Catalog name
            definition: Raw definition dictionary
            metadata: Optional metadata
        """
        self._definitions[name] = definition
        self._catalogs.pop(name, None)
        self._metadata[name] = metadata or {}
        if "description" in definition:
            self._metadata[name]["description"] = definition["description"]

    def get(self, name: str) -> Catalog:
        """
        Get a catalog by name.

        Raises:
            CatalogNotFoundError: If the catalog is not found
            CatalogParseError: If its definition is invalid
        """
        if name in self._catalogs:
            return self._catalogs[name]

        if name in self._definitions:
            catalog = self._parser.parse(name, self._definitions[name])
            self._catalogs[name] = catalog
            return catalog

        raise CatalogNotFoundError(f"Catalog not found: {name}")

    def definition(self, name: str) -> Dict[str, Any]:
        """Raw definition of a catalog registered from a definition."""
        if name not in self._definitions:
            raise CatalogNotFoundError(f"No definition for catalog: {name}")
        return self._definitions[name]

    def has(self, name: str) -> bool:
        return name in self._catalogs or name in self._definitions

    def list(self, include_builtin: bool = True) -> List[str]:
        names = set(self._catalogs) | set(self._definitions)
        if not include_builtin:
            names = {n for n in names if not self._metadata.get(n, {}).get("builtin")}
        return sorted(names)

    def get_metadata(self, name: str) -> Dict[str, Any]:
        return self._metadata.get(name, {})

    def load_file(self, path: Union[str, Path]) -> int:
        """
        Load catalogs from a YAML file.

        Returns:
            Number of catalogs loaded
        """
        data = parse_catalogs_file(path)
        count = 0

        for name, definition in data.items():
            if isinstance(definition, dict):
                self.register_definition(str(name), definition)
                count += 1
            else:
                logger.warning(f"Skipping catalog {name!r} in {path}: not a mapping")

        logger.info(f"Loaded {count} catalogs from {path}")
        return count

    def info(self) -> Dict[str, Any]:
        """Registry stats and catalog list."""
        catalogs_info = []
        for name in self.list():
            meta = self._metadata.get(name, {})
            catalogs_info.append({
                "name": name,
                "description": meta.get("description", ""),
                "builtin": meta.get("builtin", False),
            })

        return {
            "total_catalogs": len(catalogs_info),
            "builtin_catalogs": sum(1 for c in catalogs_info if c["builtin"]),
            "catalogs": catalogs_info,
        }

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "CatalogRegistry":
        registry = cls()
        registry.load_file(path)
        return registry

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __iter__(self):
        return iter(self.list())

    def __len__(self) -> int:
        return len(self.list())


BUILTIN_CATALOGS: Dict[str, Dict[str, Any]] = {
    "customers": {
        "description": "Customer list and customer segment rules",
        "fields": {
            "id": {"label": "ID", "type": "text"},
            "name": {"label": "Name", "type": "text"},
            "email": {"label": "Email", "type": "text"},
            "phone": {"label": "Phone", "type": "text"},
            "tags": {"label": "Tags", "type": "text"},
            "type": {
                "label": "Type",
                "type": "select",
                "options": ["Retail", "Wholesale", "Distributor"],
            },
            "account_status": {"label": "Account Status", "type": "select", "options": ["Active", "Inactive"]},
            "total_orders": {"label": "Total Orders", "type": "number"},
            "total_spent": {"label": "Total Spent", "type": "number"},
            "last_order_date": {"label": "Last Order Date", "type": "date"},
            "created_at": {"label": "Created", "type": "date"},
        },
        "search": ["id", "name", "email", "phone"],
        "date_field": "created_at",
        "facets": ["type", "account_status"],
        "columns": [
            {"key": "id", "label": "ID"},
            {"key": "name", "label": "Name"},
            {"key": "email", "label": "Email"},
            {"key": "phone", "label": "Phone", "visible": False},
            {"key": "type", "label": "Type"},
            {"key": "total_orders", "label": "Orders"},
            {"key": "total_spent", "label": "Total Spent"},
            {"key": "account_status", "label": "Status"},
            {"key": "created_at", "label": "Created", "visible": False},
        ],
        "sort_aliases": {"newest": "created_at_desc", "oldest": "created_at_asc"},
        "default_sort": "",
        "presets": {
            "high-value": {
                "label": "High-Value Customers (Total Spent > 50,000)",
                "match": "all",
                "rules": [{"field": "total_spent", "operator": "greater_than", "value": "50000"}],
            },
            "inactive": {
                "label": "Inactive Customers (Last Order > 90 days)",
                "match": "all",
                "rules": [{"field": "last_order_date", "operator": "before", "value": "90"}],
            },
            "vip": {
                "label": "VIP Customers (Total Spent > 100,000)",
                "match": "all",
                "rules": [{"field": "total_spent", "operator": "greater_than", "value": "100000"}],
            },
            "new": {
                "label": "New Customers (Total Orders < 5)",
                "match": "all",
                "rules": [{"field": "total_orders", "operator": "less_than", "value": "5"}],
            },
        },
    },
    "segments": {
        "description": "Customer segment list",
        "fields": {
            "id": {"label": "ID", "type": "text"},
            "segmentName": {"label": "Segment Name", "type": "text"},
            "type": {
                "label": "Type",
                "type": "select",
                "options": ["Retail", "Wholesale", "Distributor"],
            },
            "createdBy": {"label": "Created By", "type": "text"},
            "filters": {"label": "Filters", "type": "text"},
            "filteredUsers": {"label": "Users", "type": "number"},
        },
        "search": ["segmentName", "id", "createdBy"],
        "facets": ["type"],
        "columns": [
            {"key": "id", "label": "ID"},
            {"key": "segmentName", "label": "Segment Name"},
            {"key": "type", "label": "Type"},
            {"key": "createdBy", "label": "Created By"},
            {"key": "filters", "label": "Filters"},
            {"key": "filteredUsers", "label": "Users"},
        ],
        "sort_aliases": {"newest": "id_desc", "oldest": "id_asc"},
    },
    "bundles": {
        "description": "Bundle conditional activation (cart and session context)",
        "fields": {
            "cart_total": {"label": "Cart Total", "type": "number"},
            "customer_tag": {"label": "Customer Tag", "type": "select"},
            "product_quantity": {"label": "Product Quantity", "type": "number"},
            "order_count": {"label": "Order Count", "type": "number"},
            "shipping_country": {"label": "Shipping Country", "type": "text"},
            "currency": {"label": "Currency", "type": "select", "options": ["INR", "USD", "EUR", "GBP"]},
            "device_type": {"label": "Device Type", "type": "select", "options": ["Desktop", "Mobile", "Tablet"]},
            "customer_since": {"label": "Customer Since", "type": "date"},
        },
        "search": ["shipping_country", "customer_tag"],
        "date_field": "customer_since",
    },
}
