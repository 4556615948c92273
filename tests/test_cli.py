import json

import pytest

from safequery import cli
from safequery.database.models import DocumentOperation, QueryResult


@pytest.fixture
def config_file(tmp_path, sqlite_db):
    path = tmp_path / "shop.json"
    path.write_text(json.dumps({"id": "shop", "type": "sqlite", "database": sqlite_db}))
    return str(path)


def test_missing_arguments(capsys):
    assert cli.main([]) == 1
    err = capsys.readouterr().err
    assert "Missing required arguments" in err
    assert "Usage: safequery" in err


def test_unknown_command(capsys):
    assert cli.main(["migrate", "x"]) == 1
    assert "Unknown command 'migrate'" in capsys.readouterr().err


def test_wrong_argument_count(capsys, config_file):
    assert cli.main(["query", config_file]) == 1
    assert "'query' takes 2 argument(s)" in capsys.readouterr().err


def test_version(capsys):
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.startswith("safequery ")


def test_encrypt(capsys, secrets):
    assert cli.main(["encrypt", "hunter2"]) == 0
    assert secrets.decrypt(capsys.readouterr().out.strip()) == "hunter2"


def test_test_command(capsys, config_file):
    assert cli.main(["test", config_file]) == 0
    assert "[PASSED]" in capsys.readouterr().out


def test_schema_command(capsys, config_file):
    assert cli.main(["schema", config_file]) == 0
    out = capsys.readouterr().out
    assert out.startswith("DATABASE TYPE: SQLITE")
    assert "TABLE: orders" in out


def test_query_command(capsys, config_file):
    assert cli.main(["query", config_file, "SELECT name FROM users ORDER BY id"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"row_count": 2, "rows": [{"name": "Ada"}, {"name": "Grace"}]}


def test_query_command_rejects_writes(capsys, config_file):
    assert cli.main(["query", config_file, "DROP TABLE users"]) == 1
    assert "Dangerous SQL operation detected" in capsys.readouterr().err


def test_missing_config_file(capsys, tmp_path):
    assert cli.main(["test", str(tmp_path / "nope.json")]) == 1
    assert capsys.readouterr().err.startswith("Error: ")


def test_mongodb_query_is_parsed_as_document_operation(monkeypatch, tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps({"id": "ev", "type": "mongodb", "host": "mongo", "database": "events"}))
    seen = []

    def fake_execute(config, request):
        seen.append(request)
        return QueryResult(rows=[{"count": 3}], row_count=1)

    monkeypatch.setattr(cli, "execute_query", fake_execute)
    assert cli.main(["query", str(path), '{"collection": "clicks", "operation": "count"}']) == 0
    assert seen == [DocumentOperation(collection="clicks", operation="count")]
