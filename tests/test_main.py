import pytest

from leafscan.main import run
from tests.utils import build_cell, build_database, build_leaf_page, build_payload, int_field, text_field


@pytest.fixture
def database_path(tmp_path):
    cells = [build_cell(build_payload([text_field("alice"), int_field(7)]), row_id=4)]
    path = tmp_path / "test.db"
    path.write_bytes(build_database([build_leaf_page(cells)]))
    return str(path)


def test_dbinfo(database_path, capsys):
    assert run([database_path, ".dbinfo"]) == 0

    out = capsys.readouterr().out
    assert "database page size: 512" in out
    assert "number of pages: 3" in out


def test_pages(database_path, capsys):
    assert run([database_path, ".pages"]) == 0

    assert capsys.readouterr().out.splitlines() == [
        "0|leaf_table",
        "1|interior_table",
        "2|leaf_table",
    ]


def test_rows(database_path, capsys):
    assert run([database_path, ".rows"]) == 0

    assert capsys.readouterr().out.splitlines() == ["4|alice|7"]


def test_layout(capsys):
    sql = "CREATE TABLE logins (origin_url, action_url, username_element, username_value, password_element, password_value)"

    assert run([".layout", sql]) == 0
    assert capsys.readouterr().out.strip() == "url - - username - secret"


def test_not_a_database_fails(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_bytes(b"hello" * 100)

    assert run([str(path), ".dbinfo"]) == 1


def test_missing_file_fails(tmp_path):
    assert run([str(tmp_path / "missing.db"), ".rows"]) == 1


def test_unknown_command(database_path):
    assert run([database_path, ".schema"]) == 2


def test_layout_of_empty_statement_fails():
    assert run([".layout", ""]) == 1
