import json

import pytest
from fastapi.testclient import TestClient

from tableview.config import Settings
from tableview.main import create_app

CSV = "name,city,age\nAlice,Montréal,30\nbob,Paris,4\nCarol,Berlin,30\nDave,paris,12.5\n"


@pytest.fixture
def client():
    return TestClient(create_app(Settings(max_upload_bytes=1024)))


@pytest.fixture
def sid(client):
    sid = client.post("/sessions").json()["session_id"]
    files = {"file": ("people.csv", CSV.encode("utf-8"), "text/csv")}
    r = client.post(f"/sessions/{sid}/upload", files=files)
    assert r.status_code == 200
    return sid


def test_view_before_load_is_empty(client):
    sid = client.post("/sessions").json()["session_id"]
    r = client.get(f"/sessions/{sid}/view")
    assert r.status_code == 200
    assert r.json()["view"] is None


def test_unknown_session(client):
    assert client.get("/sessions/nope/view").status_code == 404
    assert client.delete("/sessions/nope").status_code == 404


def test_delete_session(client, sid):
    assert client.delete(f"/sessions/{sid}").status_code == 204
    assert client.get(f"/sessions/{sid}/view").status_code == 404


def test_filter_then_sort(client, sid):
    r = client.post(f"/sessions/{sid}/filter", json={"term": "PARIS"})
    assert r.status_code == 200
    body = r.json()
    assert body["view"]["row_count"] == 2
    assert body["table"]["row_count"] == 4
    kinds = [e["kind"] for e in body["effects"]]
    assert kinds == ["render_view", "update_row_count"]

    r = client.post(f"/sessions/{sid}/sort", json={"column_index": 2})
    view = r.json()["view"]
    assert view["sort"] == {"column_index": 2, "direction": "asc"}
    assert [row[0] for row in view["rows"]] == ["bob", "Dave"]


def test_sort_out_of_range(client, sid):
    r = client.post(f"/sessions/{sid}/sort", json={"column_index": 9})
    assert r.status_code == 422
    assert r.json()["error"] == "ColumnIndexError"


def test_sort_without_table(client):
    sid = client.post("/sessions").json()["session_id"]
    r = client.post(f"/sessions/{sid}/sort", json={"column_index": 0})
    assert r.status_code == 409
    assert r.json() == {"error": "NoTableLoadedError", "detail": "No file is loaded"}


def test_bad_upload_keeps_current_table(client, sid):
    files = {"file": ("broken.json", b"{nope", "application/json")}
    r = client.post(f"/sessions/{sid}/upload", files=files)
    assert r.status_code == 422
    assert r.json()["error"] == "ParseError"

    view = client.get(f"/sessions/{sid}/view").json()
    assert view["table"]["file_name"] == "people.csv"


def test_upload_too_large(client, sid):
    files = {"file": ("big.csv", b"a\n" + b"x\n" * 1024, "text/csv")}
    assert client.post(f"/sessions/{sid}/upload", files=files).status_code == 413


def test_open_path(client, tmp_path):
    src = tmp_path / "rows.jsonl"
    src.write_text('{"a": 1}\n{"b": 2}\n', encoding="utf-8")
    sid = client.post("/sessions").json()["session_id"]

    r = client.post(f"/sessions/{sid}/open", json={"path": str(src)})
    assert r.status_code == 200
    body = r.json()
    assert body["table"]["file_type"] == "jsonl"
    assert body["view"]["headers"] == ["a", "b"]
    assert body["view"]["rows"] == [["1", ""], ["", "2"]]


def test_export_reflects_current_view(client, sid, tmp_path):
    client.post(f"/sessions/{sid}/filter", json={"term": "30"})
    client.post(f"/sessions/{sid}/sort", json={"column_index": 0})
    client.post(f"/sessions/{sid}/sort", json={"column_index": 0})

    dest = tmp_path / "view.json"
    r = client.post(f"/sessions/{sid}/export", json={"path": str(dest), "format": "json"})
    assert r.status_code == 200
    assert r.json()["effects"] == [{"kind": "show_message", "message": f"Exported 2 rows to {dest}"}]
    assert [rec["name"] for rec in json.loads(dest.read_text(encoding="utf-8"))] == ["Carol", "Alice"]


def test_export_failure(client, sid, tmp_path):
    r = client.post(
        f"/sessions/{sid}/export",
        json={"path": str(tmp_path / "no" / "dir.csv"), "format": "csv"},
    )
    assert r.status_code == 500
    assert r.json()["error"] == "ExportIOError"


def test_download_csv(client, sid):
    client.post(f"/sessions/{sid}/filter", json={"term": "berlin"})
    r = client.get(f"/sessions/{sid}/download", params={"format": "csv"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.text == "name,city,age\r\nCarol,Berlin,30\r\n"


def test_paths_are_confined_to_data_dir(tmp_path):
    data = tmp_path / "data"
    data.mkdir()
    (data / "ok.csv").write_text("a\n1\n", encoding="utf-8")
    (tmp_path / "secret.csv").write_text("a\n2\n", encoding="utf-8")

    client = TestClient(create_app(Settings(data_dir=data)))
    sid = client.post("/sessions").json()["session_id"]

    for path in ["../secret.csv", str(tmp_path / "secret.csv")]:
        r = client.post(f"/sessions/{sid}/open", json={"path": path})
        assert r.status_code == 403
        assert r.json()["error"] == "PathNotAllowedError"

    r = client.post(f"/sessions/{sid}/open", json={"path": "ok.csv"})
    assert r.status_code == 200
    assert r.json()["view"]["rows"] == [["1"]]

    r = client.post(f"/sessions/{sid}/export", json={"path": "../out.csv", "format": "csv"})
    assert r.status_code == 403
    assert not (tmp_path / "out.csv").exists()

    r = client.post(f"/sessions/{sid}/export", json={"path": "out.csv", "format": "csv"})
    assert r.status_code == 200
    assert (data / "out.csv").read_bytes() == b"a\r\n1\r\n"


def test_oldest_session_is_dropped_past_the_limit():
    client = TestClient(create_app(Settings(max_sessions=1)))
    first = client.post("/sessions").json()["session_id"]
    second = client.post("/sessions").json()["session_id"]
    assert client.get(f"/sessions/{first}/view").status_code == 404
    assert client.get(f"/sessions/{second}/view").status_code == 200
