#!/usr/bin/env python3
"""
rulekit - rule evaluation and list views from the command line.

Runs the collection pipeline of a catalog over a JSON file of records and
prints the resulting page.
"""
import sys
import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

from rulekit.catalog import Catalog, CatalogRegistry
from rulekit.columns import project, project_record
from rulekit.config import RulekitConfig, init_config
from rulekit.evaluator import explain
from rulekit.pipeline import ResultPage
from rulekit.rules import Rule, RuleGroup

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)


def load_registry(config: RulekitConfig, extra_file: str = None) -> CatalogRegistry:
    """Built-in catalogs plus any configured catalog files."""
    registry = CatalogRegistry()
    for path in (config.catalogs_file, extra_file):
        if path:
            registry.load_file(path)
    return registry


def load_records(path: str) -> List[Dict[str, Any]]:
    """Read records from a JSON file ('-' for stdin): a list, or {"records": [...]}."""
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path) as f:
            data = json.load(f)

    if isinstance(data, dict):
        data = data.get("records", data.get("items"))
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of records")
    return data


def parse_rule(text: str) -> Rule:
    """Parse 'field operator value' (the value may contain spaces)."""
    parts = text.split(None, 2)
    if len(parts) < 3:
        raise ValueError(f"Rule must be 'field operator value', got {text!r}")
    return Rule(field=parts[0], operator=parts[1], value=parts[2])


def parse_filter(text: str) -> tuple:
    """Parse 'field=v1,v2'."""
    if "=" not in text:
        raise ValueError(f"Filter must be 'field=value[,value...]', got {text!r}")
    key, _, values = text.partition("=")
    return key.strip(), [v.strip() for v in values.split(",") if v.strip()]


def build_rule_group(args, catalog: Catalog):
    """Rule group from --preset and --rule; None when neither is given."""
    if not args.preset and not args.rule:
        return None

    rules = [parse_rule(text) for text in args.rule or []]
    if args.preset:
        group = catalog.preset(args.preset)
        for rule in rules:
            group = group.add(rule)
    else:
        group = RuleGroup.of(*rules)
    if args.match:
        group = group.with_combinator(args.match)
    return group


def output_page(page: ResultPage, catalog: Catalog, columns, format: str, pretty: bool = True):
    """Output a result page in the specified format."""
    rows = [project_record(r, columns) for r in page.items]

    if format == "json":
        data = {
            "items": rows,
            "total_matched": page.total_matched,
            "total_pages": page.total_pages,
            "page": page.page,
            "page_size": page.page_size,
            "facets": page.facets,
        }
        print(json.dumps(data, indent=2 if pretty else None, default=str))
        return

    table = Table(title=catalog.description or catalog.name)
    for column in columns:
        table.add_column(column.display, style="cyan" if column is columns[0] else None)
    for row in rows:
        table.add_row(*[_format_cell(row[c.key]) for c in columns])
    console.print(table)
    console.print(
        f"[dim]Page {page.page}/{page.total_pages} · {page.total_matched} matched[/dim]"
    )
    for name, counts in page.facets.items():
        summary = ", ".join(f"{value}: {count}" for value, count in counts.items())
        console.print(f"[dim]{name}: {summary or '-'}[/dim]")


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def cmd_catalogs(args):
    """List catalogs."""
    registry = load_registry(args.config_obj, args.catalogs)
    info = registry.info()

    if args.output == "json":
        print(json.dumps(info, indent=2))
        return

    table = Table(title="Catalogs")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Built-in", style="magenta")
    for entry in info["catalogs"]:
        table.add_row(entry["name"], entry["description"], "yes" if entry["builtin"] else "")
    console.print(table)


def cmd_fields(args):
    """Show the fields of a catalog with their operators."""
    registry = load_registry(args.config_obj, args.catalogs)
    catalog = registry.get(args.catalog or args.config_obj.default_catalog)

    fields = [{
        "name": f.name,
        "label": f.display,
        "type": str(f.value_type),
        "options": f.option_values(),
        "operators": [op.code for op in catalog.registry.operators_for(f.name)],
    } for f in catalog.registry.fields()]

    if args.output == "json":
        print(json.dumps({"catalog": catalog.name, "fields": fields,
                          "presets": catalog.preset_names()}, indent=2))
        return

    table = Table(title=f"Fields of {catalog.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Label")
    table.add_column("Type", style="magenta")
    table.add_column("Operators", style="green")
    table.add_column("Options", style="yellow")
    for f in fields:
        table.add_row(f["name"], f["label"], f["type"], ", ".join(f["operators"]), ", ".join(f["options"]))
    console.print(table)
    if catalog.presets:
        console.print("Presets: " + ", ".join(catalog.preset_names()))


def cmd_query(args):
    """Run the pipeline over a records file."""
    config = args.config_obj
    registry = load_registry(config, args.catalogs)
    catalog = registry.get(args.catalog)
    records = load_records(args.records)

    view = catalog.default_view(page_size=args.page_size or config.page_size)
    if args.search:
        view = view.with_search(args.search)

    group = build_rule_group(args, catalog)
    if group is not None:
        view = view.with_rule_group(group)
        for diagnostic in explain(group, catalog.registry):
            if diagnostic.error is not None:
                err_console.print(
                    f"[yellow]Rule '{diagnostic.rule.field} {diagnostic.rule.operator} "
                    f"{diagnostic.rule.value}' matches nothing: {diagnostic.error}[/yellow]"
                )

    for text in args.filter or []:
        key, values = parse_filter(text)
        view = view.with_filter(key, values)
    if args.date_from or args.date_to:
        view = view.with_date_range(args.date_from, args.date_to)
    if args.sort is not None:
        view = view.with_sort(args.sort)
    if args.columns:
        view = view.with_columns(c.strip() for c in args.columns.split(",") if c.strip())
    view = view.with_page(args.page)

    page = catalog.pipeline().run(records, view)
    columns = project(catalog.columns, view.visible_columns)
    output_page(page, catalog, columns, args.output, pretty=config.export_pretty)


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="rulekit - rule evaluation and list views for admin data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  rulekit catalogs
  rulekit fields customers
  rulekit query customers customers.json --rule "total_spent greater_than 50000"
  rulekit query customers customers.json --preset high-value --sort total_spent_desc
  rulekit query customers customers.json --rule "type equals Retail" \\
      --rule "type equals Wholesale" --match any
  rulekit query segments segments.json --search retail --filter type=Retail --page 2

Configuration:
  Config file: ~/.config/rulekit/config.toml or ./rulekit.toml
  Environment: RULEKIT_PAGE_SIZE, RULEKIT_OUTPUT_FORMAT, RULEKIT_CATALOGS_FILE
        """
    )

    parser.add_argument("--config", help="Config file path")
    parser.add_argument("--catalogs", help="Extra catalog YAML file")
    parser.add_argument("-o", "--output", choices=["table", "json"], help="Output format")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    catalogs_parser = subparsers.add_parser("catalogs", help="List catalogs")
    catalogs_parser.set_defaults(func=cmd_catalogs)

    fields_parser = subparsers.add_parser("fields", help="Show fields and operators of a catalog")
    fields_parser.add_argument("catalog", nargs="?", help="Catalog name (default: config default_catalog)")
    fields_parser.set_defaults(func=cmd_fields)

    query_parser = subparsers.add_parser("query", help="Filter, sort and page a records file")
    query_parser.add_argument("catalog", help="Catalog name")
    query_parser.add_argument("records", help="JSON file of records ('-' for stdin)")
    query_parser.add_argument("--search", help="Free-text search")
    query_parser.add_argument("--rule", action="append", help="Rule 'field operator value' (repeatable)")
    query_parser.add_argument("--match", choices=["all", "any"], help="Combine rules with AND (all) or OR (any)")
    query_parser.add_argument("--preset", help="Start from a catalog rule preset")
    query_parser.add_argument("--filter", action="append", help="Equality filter 'field=v1,v2' (repeatable)")
    query_parser.add_argument("--from", dest="date_from", help="Date range start")
    query_parser.add_argument("--to", dest="date_to", help="Date range end (inclusive)")
    query_parser.add_argument("--sort", help="Sort token, e.g. total_spent_desc")
    query_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    query_parser.add_argument("--page-size", type=int, help="Rows per page")
    query_parser.add_argument("--columns", help="Comma-separated visible columns")
    query_parser.set_defaults(func=cmd_query)

    args = parser.parse_args(argv)

    config = init_config(
        config_file=Path(args.config) if args.config else None,
        output_format=args.output,
    )
    args.config_obj = config
    if not args.output:
        args.output = config.output_format
    if not config.color_output:
        console.no_color = True
        err_console.no_color = True

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, str(config.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
