"""
YAML parser for catalog definitions.

A catalog file maps catalog names to definitions:

    customers:
      description: Customer list and segment rules
      fields:
        name: {label: Name, type: text}
        total_spent: {label: Total Spent, type: number}
        account_status:
          label: Status
          type: select
          options: [Active, Inactive]
      search: [name, email]
      date_field: created_at
      facets: [account_status]
      columns:
        - {key: name, label: Name}
        - {key: email, label: Email, visible: false}
      sort_aliases: {newest: created_at_desc}
      default_sort: name_asc
      presets:
        high-value:
          label: High-Value Customers
          match: all
          rules:
            - {field: total_spent, operator: greater_than, value: "50000"}

    wholesale_customers:
      extends: customers
      default_sort: total_spent_desc
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import yaml

from rulekit.columns import Column
from rulekit.errors import CatalogNotFoundError, CatalogParseError
from rulekit.fields import FieldRegistry
from rulekit.rules import RulePreset

if TYPE_CHECKING:
    from rulekit.catalog import Catalog, CatalogRegistry

logger = logging.getLogger(__name__)

CATALOG_KEYS = {
    "description",
    "extends",
    "fields",
    "search",
    "date_field",
    "facets",
    "columns",
    "sort_aliases",
    "default_sort",
    "presets",
}


def parse_catalogs_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Parse a YAML file containing catalog definitions.

    Args:
        path: Path to YAML file

    Returns:
        Dictionary mapping catalog names to raw definitions
    """
    path = Path(path)

    if not path.exists():
        raise CatalogParseError(f"Catalog file not found: {path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CatalogParseError(f"Invalid YAML in {path}: {e}")

    if not isinstance(data, dict):
        raise CatalogParseError(f"Catalog file must contain a dictionary, got {type(data).__name__}")

    return data


def parse_catalogs_string(text: str) -> Dict[str, Any]:
    """Parse catalog definitions from a YAML string."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise CatalogParseError(f"Invalid YAML: {e}")
    if not isinstance(data, dict):
        raise CatalogParseError(f"Catalog definitions must be a dictionary, got {type(data).__name__}")
    return data


def parse_catalog(
    name: str,
    definition: Dict[str, Any],
    registry: Optional["CatalogRegistry"] = None,
) -> "Catalog":
    """
    Parse a single catalog definition into a Catalog object.

    Args:
        name: Catalog name
        definition: Dictionary containing the catalog definition
        registry: Optional registry for resolving 'extends'

    Returns:
        Parsed Catalog object
    """
    parser = CatalogParser(registry)
    return parser.parse(name, definition)


class CatalogParser:
    """
    Parser for catalog definitions.

    'extends: <name>' starts from another catalog in the registry; keys in
    the extending definition replace the base's, except 'fields',
    'sort_aliases' and 'presets', which are merged.
    """

    def __init__(self, registry: Optional["CatalogRegistry"] = None):
        self.registry = registry

    def parse(self, name: str, definition: Dict[str, Any]) -> "Catalog":
        """Parse a catalog definition into a Catalog object."""
        from rulekit.catalog import Catalog

        if not isinstance(definition, dict):
            raise CatalogParseError(f"Catalog {name!r} must be a dictionary, got {type(definition).__name__}")

        unknown = set(definition) - CATALOG_KEYS
        if unknown:
            raise CatalogParseError(f"Catalog {name!r} has unknown keys: {sorted(unknown)}")

        if "extends" in definition:
            definition = self._merge_base(name, definition)

        registry = self._parse_fields(name, definition.get("fields"))

        search = self._parse_name_list(name, "search", definition.get("search"))
        facets = self._parse_name_list(name, "facets", definition.get("facets"))
        for key in search + facets:
            if key not in registry:
                logger.warning(f"Catalog {name!r} references undeclared field {key!r}")

        date_field = definition.get("date_field")
        if date_field is not None and date_field not in registry:
            raise CatalogParseError(f"Catalog {name!r}: date_field {date_field!r} is not a declared field")

        return Catalog(
            name=name,
            description=str(definition.get("description", "")),
            registry=registry,
            searchable_fields=search,
            date_field=date_field,
            facet_fields=facets,
            columns=self._parse_columns(name, definition.get("columns"), registry),
            sort_aliases=self._parse_aliases(name, definition.get("sort_aliases")),
            default_sort=str(definition.get("default_sort", "") or ""),
            presets=self._parse_presets(name, definition.get("presets")),
        )

    def _merge_base(self, name: str, definition: Dict[str, Any], seen: tuple = ()) -> Dict[str, Any]:
        base_name = definition["extends"]
        if base_name == name or base_name in seen:
            raise CatalogParseError(f"Catalog {name!r} has a circular 'extends'")
        if self.registry is None:
            raise CatalogParseError(f"Catalog {name!r} extends {base_name!r} but no registry was given")
        try:
            base = self.registry.definition(base_name)
        except CatalogNotFoundError:
            raise CatalogParseError(f"Catalog {name!r} extends unknown catalog {base_name!r}")

        if "extends" in base:
            base = self._merge_base(base_name, base, seen + (name,))

        merged = dict(base)
        for key, value in definition.items():
            if key == "extends":
                continue
            if key in ("fields", "sort_aliases", "presets") and isinstance(value, dict):
                merged[key] = {**(merged.get(key) or {}), **value}
            else:
                merged[key] = value
        merged.pop("extends", None)
        return merged

    def _parse_fields(self, name: str, fields_def: Any) -> FieldRegistry:
        if not isinstance(fields_def, dict) or not fields_def:
            raise CatalogParseError(f"Catalog {name!r} must declare a non-empty 'fields' mapping")
        try:
            return FieldRegistry.from_dict(fields_def)
        except (ValueError, AttributeError, TypeError) as e:
            raise CatalogParseError(f"Catalog {name!r}: {e}")

    def _parse_name_list(self, name: str, key: str, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        if not isinstance(value, list):
            raise CatalogParseError(f"Catalog {name!r}: '{key}' must be a list")
        return [str(v) for v in value]

    def _parse_columns(self, name: str, columns_def: Any, registry: FieldRegistry) -> List[Column]:
        if columns_def is None:
            # Default: one visible column per declared field
            return [Column(key=f.name, label=f.display) for f in registry.fields()]
        if not isinstance(columns_def, list):
            raise CatalogParseError(f"Catalog {name!r}: 'columns' must be a list")
        try:
            columns = [Column.from_dict(c) for c in columns_def]
        except (KeyError, TypeError) as e:
            raise CatalogParseError(f"Catalog {name!r}: bad column definition ({e})")

        keys = [c.key for c in columns]
        if len(keys) != len(set(keys)):
            raise CatalogParseError(f"Catalog {name!r}: duplicate column keys")
        return columns

    def _parse_aliases(self, name: str, aliases_def: Any) -> Dict[str, str]:
        if aliases_def is None:
            return {}
        if not isinstance(aliases_def, dict):
            raise CatalogParseError(f"Catalog {name!r}: 'sort_aliases' must be a mapping")
        return {str(k): str(v) for k, v in aliases_def.items()}

    def _parse_presets(self, name: str, presets_def: Any) -> List[RulePreset]:
        if presets_def is None:
            return []
        if not isinstance(presets_def, dict):
            raise CatalogParseError(f"Catalog {name!r}: 'presets' must be a mapping")
        presets = []
        for preset_name, preset_def in presets_def.items():
            if not isinstance(preset_def, dict):
                raise CatalogParseError(f"Catalog {name!r}: preset {preset_name!r} must be a mapping")
            try:
                presets.append(RulePreset.from_dict(str(preset_name), preset_def))
            except ValueError as e:
                raise CatalogParseError(f"Catalog {name!r}: preset {preset_name!r}: {e}")
        return presets
