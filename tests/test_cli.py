import json
import sys
from pathlib import Path

import pytest

from bluebox_catalog import cli

SAMPLE = Path(__file__).resolve().parent.parent / "sample-data" / "catalog.json"


def parse(*argv):
    return cli.build_parser().parse_args(list(argv))


def test_build_query_args_maps_genre_name():
    args = parse("query", "movies", "--genre", "Horror", "--limit", "5")
    assert cli.build_query_args(("genreName", "rating", "limit", "offset"), args) == {
        "genreName": "Horror",
        "limit": 5,
    }

    args = parse("query", "movieTitles", "--genre", "Horror", "--rating", "G")
    assert cli.build_query_args(("rating", "genre"), args) == {"genre": "Horror", "rating": "G"}


def test_query_against_snapshot(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "bluebox-catalog", "query", "movies", "--memory", str(SAMPLE), "--limit", "2",
    ])
    cli.main()

    envelope = json.loads(capsys.readouterr().out)
    result = envelope["data"]["movies"]
    assert [m["film_id"] for m in result["movies"]] == [1, 2]
    assert result["hasMore"] is True


def test_query_by_category_against_snapshot(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "bluebox-catalog", "query", "moviesByCategory", "--memory", str(SAMPLE),
    ])
    cli.main()

    groups = json.loads(capsys.readouterr().out)["data"]["moviesByCategory"]["moviesByCategory"]
    assert [g["genre"]["name"] for g in groups] == ["Documentary", "Horror"]
    assert [m["film_id"] for m in groups[0]["movies"]] == [1, 3]
    assert groups[0]["averageRentalCount"] == 1.5


def test_query_error_exits_nonzero(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", [
        "bluebox-catalog", "query", "movie", "--id", "999", "--memory", str(SAMPLE),
    ])
    with pytest.raises(SystemExit) as info:
        cli.main()
    assert info.value.code == 1
    envelope = json.loads(capsys.readouterr().out)
    assert envelope["errors"][0]["code"] == "NOT_FOUND"


def test_operations_listing(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["bluebox-catalog", "operations"])
    cli.main()
    out = capsys.readouterr().out
    assert "moviesByCategory" in out
    assert "genreName, rating, limit, offset" in out
