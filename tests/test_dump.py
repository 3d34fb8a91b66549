"""Tests for the dump tool."""

import json

import pytest

from json_tables import JsonStorage
from json_tables.dump import format_value, main, resolve_record


@pytest.fixture
def schema_dir(tmp_path):
    d = tmp_path / "schemas"
    d.mkdir()
    (d / "author.json").write_text(json.dumps({
        "type": "Author",
        "schema": {"properties": {"name": {"type": "string"}}},
    }))
    (d / "book.json").write_text(json.dumps({
        "type": "Book",
        "schema": {"properties": {"title": {"type": "string"}, "author": {"$ref": "/Author"}}},
    }))
    return d


@pytest.fixture
def data_dir(tmp_path, schema_dir):
    d = tmp_path / "data"
    storage = JsonStorage({"path": d, "schema": schema_dir})
    storage.save("Book", {"title": "X", "author": {"name": "A"}})
    storage.save("Book", {"title": "Y", "author": 7})
    return d


class TestFormatValue:
    def test_values(self):
        """Test formatting of null, string, number and list values."""
        assert format_value(None) == "NULL"
        assert format_value("a") == "'a'"
        assert format_value(3) == "3"
        assert format_value([1, 2]) == "[1, 2]"


class TestResolveRecord:
    def test_resolves_one_level(self, data_dir, schema_dir):
        """Test that reference ids are replaced by their records."""
        storage = JsonStorage({"path": data_dir, "schema": schema_dir})
        record = storage.load("Book", 1)
        resolved = resolve_record(storage, "Book", record)

        assert resolved["author"] == {"name": "A", "id": 1}
        assert record["author"] == 1

    def test_dangling_ids_are_kept(self, data_dir, schema_dir):
        """Test that ids without a stored record stay as ids."""
        storage = JsonStorage({"path": data_dir, "schema": schema_dir})
        assert resolve_record(storage, "Book", storage.load("Book", 2))["author"] == 7


class TestMain:
    def test_list_tables(self, data_dir, capsys):
        """Test listing data files with their record counts."""
        assert main([str(data_dir)]) == 0
        out = capsys.readouterr().out
        assert "Author" in out
        assert "Book" in out
        assert "2 records" in out

    def test_dump_table(self, data_dir, capsys):
        """Test printing a table one field per line."""
        assert main([str(data_dir), "Book"]) == 0
        out = capsys.readouterr().out
        assert "Table: Book" in out
        assert "title: 'X'" in out
        assert "author: 1" in out

    def test_dump_json_resolved(self, data_dir, schema_dir, capsys):
        """Test JSON output with resolved references."""
        assert main([str(data_dir), "Book", "--json", "--resolve", "--schema", str(schema_dir)]) == 0
        records = json.loads(capsys.readouterr().out)
        assert records[0]["author"] == {"name": "A", "id": 1}
        assert records[1]["author"] == 7

    def test_limit(self, data_dir, capsys):
        """Test limiting the number of printed records."""
        assert main([str(data_dir), "Book", "-n", "1"]) == 0
        assert "... (1 more records)" in capsys.readouterr().out

    def test_unknown_table(self, data_dir, capsys):
        """Test that an unknown table is an error."""
        assert main([str(data_dir), "Nope"]) == 1
        assert "Unknown table/type: Nope" in capsys.readouterr().err

    def test_missing_data_dir(self, tmp_path, capsys):
        """Test that a missing data directory is an error."""
        assert main([str(tmp_path / "missing")]) == 1
        assert "Data directory not found" in capsys.readouterr().err
