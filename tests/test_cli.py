"""
Tests for rulekit/cli.py

Tests the CLI interface including:
- Argument helpers (rules, filters, records files)
- catalogs / fields / query commands
- JSON and table output
- Error handling and exit codes
"""
import json
import os
import pytest

import rulekit.config
from rulekit import cli


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Run every command with default configuration."""
    for key in list(os.environ.keys()):
        if key.startswith("RULEKIT_"):
            monkeypatch.delenv(key, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setattr(rulekit.config, "_config", None)


def run_json(capsys, *argv):
    """Run the CLI with JSON output and parse stdout."""
    cli.main(["-o", "json", *argv])
    return json.loads(capsys.readouterr().out)


def ids(data):
    return [item["id"] for item in data["items"]]


def flat(text):
    """Collapse line wrapping done by the console."""
    return " ".join(text.split())


class TestHelpers:
    """Test argument parsing helpers."""

    def test_parse_rule(self):
        rule = cli.parse_rule("name contains Priya Sharma")
        assert (rule.field, rule.operator, rule.value) == ("name", "contains", "Priya Sharma")

    def test_parse_rule_needs_three_parts(self):
        with pytest.raises(ValueError):
            cli.parse_rule("total_spent greater_than")

    def test_parse_filter(self):
        assert cli.parse_filter("type=Retail, Wholesale") == ("type", ["Retail", "Wholesale"])

    def test_parse_filter_needs_equals(self):
        with pytest.raises(ValueError):
            cli.parse_filter("type")

    def test_load_records_accepts_wrapped_list(self, tmp_path, sample_customers):
        path = tmp_path / "wrapped.json"
        path.write_text(json.dumps({"records": sample_customers}))
        assert len(cli.load_records(str(path))) == 6

    def test_load_records_rejects_scalars(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("42")
        with pytest.raises(ValueError):
            cli.load_records(str(path))


# =============================================================================
# Commands
# =============================================================================

class TestCatalogsCommand:
    """Test 'rulekit catalogs'."""

    def test_json(self, capsys):
        data = run_json(capsys, "catalogs")
        assert data["total_catalogs"] == 3

    def test_table(self, capsys):
        cli.main(["catalogs"])
        out = capsys.readouterr().out
        assert "customers" in out
        assert "bundles" in out

    def test_extra_catalogs_file(self, capsys, tmp_path):
        path = tmp_path / "extra.yaml"
        path.write_text("orders:\n  fields:\n    total: number\n")
        data = run_json(capsys, "--catalogs", str(path), "catalogs")
        assert "orders" in [c["name"] for c in data["catalogs"]]


class TestFieldsCommand:
    """Test 'rulekit fields'."""

    def test_json(self, capsys):
        data = run_json(capsys, "fields", "customers")
        fields = {f["name"]: f for f in data["fields"]}

        assert fields["total_spent"]["type"] == "number"
        assert "greater_than" in fields["total_spent"]["operators"]
        assert fields["created_at"]["operators"] == ["before", "after", "between"]
        assert fields["account_status"]["options"] == ["Active", "Inactive"]
        assert "vip" in data["presets"]

    def test_default_catalog_from_config(self, capsys, monkeypatch):
        monkeypatch.setenv("RULEKIT_DEFAULT_CATALOG", "bundles")
        data = run_json(capsys, "fields")
        assert data["catalog"] == "bundles"


class TestQueryCommand:
    """Test 'rulekit query'."""

    def test_rule_and_sort(self, capsys, records_file):
        data = run_json(capsys, "query", "customers", str(records_file),
                        "--rule", "total_spent greater_than 50000",
                        "--sort", "total_spent_desc")
        assert ids(data) == ["C003", "C005", "C001"]
        assert data["total_matched"] == 3

    def test_preset_plus_rule(self, capsys, records_file):
        data = run_json(capsys, "query", "customers", str(records_file),
                        "--preset", "high-value", "--rule", "type equals Retail")
        assert ids(data) == ["C001"]

    def test_match_any_and_paging(self, capsys, records_file):
        data = run_json(capsys, "query", "customers", str(records_file),
                        "--rule", "type equals Retail",
                        "--rule", "type equals Wholesale",
                        "--match", "any",
                        "--page-size", "2", "--page", "2")
        assert data["total_matched"] == 5
        assert data["total_pages"] == 3
        assert ids(data) == ["C004", "C005"]

    def test_search_filter_and_columns(self, capsys, records_file):
        data = run_json(capsys, "query", "customers", str(records_file),
                        "--search", "example",
                        "--filter", "type=Retail,Distributor",
                        "--columns", "id,name")
        assert data["items"] == [
            {"id": "C001", "name": "Priya Sharma"},
            {"id": "C004", "name": "John Smith"},
            {"id": "C006", "name": "amit patel"},
        ]
        assert data["facets"]["type"] == {"Retail": 3}

    def test_date_range(self, capsys, records_file):
        data = run_json(capsys, "query", "customers", str(records_file),
                        "--from", "2024-01-01", "--to", "2024-06-10")
        assert ids(data) == ["C002", "C004", "C006"]

    def test_bad_rule_warns_and_matches_nothing(self, capsys, records_file):
        cli.main(["-o", "json", "query", "customers", str(records_file),
                  "--rule", "total_spent greater_than abc"])
        captured = capsys.readouterr()

        assert json.loads(captured.out)["total_matched"] == 0
        assert "matches nothing" in flat(captured.err)

    def test_table_output(self, capsys, records_file):
        cli.main(["query", "customers", str(records_file), "--preset", "vip", "--columns", "id,name"])
        out = flat(capsys.readouterr().out)
        assert "C003" in out
        assert "C001" not in out
        assert "1 matched" in out

    def test_page_size_from_config(self, capsys, records_file, monkeypatch):
        monkeypatch.setenv("RULEKIT_PAGE_SIZE", "4")
        data = run_json(capsys, "query", "customers", str(records_file))
        assert data["page_size"] == 4
        assert len(data["items"]) == 4


class TestErrors:
    """Test error handling and exit codes."""

    def test_unknown_catalog_exits_1(self, capsys, records_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["query", "orders", str(records_file)])
        assert exc_info.value.code == 1
        assert "Catalog not found" in flat(capsys.readouterr().err)

    def test_malformed_rule_exits_1(self, records_file):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["query", "customers", str(records_file), "--rule", "total_spent"])
        assert exc_info.value.code == 1

    def test_missing_records_file_exits_1(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["query", "customers", str(tmp_path / "missing.json")])
        assert exc_info.value.code == 1

    def test_command_is_required(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 2
