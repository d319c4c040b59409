# Overview: Pytest coverage for the Flask CLI inspection commands.

import json


def test_catalog_show(app, zelda):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["catalog", "show", zelda.barcode])
    assert result.exit_code == 0
    assert json.loads(result.output)["stock_with_case"] == 10


def test_catalog_show_missing(app, db_session):
    result = app.test_cli_runner().invoke(args=["catalog", "show", "0000000000000"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_catalog_list_in_stock(app, zelda, make_game):
    make_game("0045496596583", title="Empty Shelf")
    result = app.test_cli_runner().invoke(args=["catalog", "list", "--in-stock"])
    assert result.exit_code == 0
    assert zelda.barcode in result.output
    assert "Empty Shelf" not in result.output
    assert "Showing 1 of 1" in result.output


def test_ledger_recent_empty(app, db_session):
    result = app.test_cli_runner().invoke(args=["ledger", "recent"])
    assert result.exit_code == 0
    assert "No ledger events found." in result.output
