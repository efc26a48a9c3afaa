import json
import os

from fakes import BASE_URL, FakePage, FakeSessionManager, listing_block, listing_page

from modules.phd_watch.lib import engine
from modules.phd_watch.lib.browser import SessionError
from service import cli, logging_utils


def _argv(tmp_path, *extra):
    return [
        "run",
        "--kwargs",
        f"base_url={BASE_URL}",
        "max_pages=1",
        "settle_delay_s=0",
        "page_delay_s=0",
        f"output_path={tmp_path / 'out.csv'}",
        f"log_dir={tmp_path / 'logs'}",
        *extra,
    ]


def _patch_session(monkeypatch, **kw):
    manager = FakeSessionManager(**kw)
    monkeypatch.setattr(engine, "SessionManager", lambda settings, run_log: manager)
    return manager


def _jsonl(path):
    with open(path, encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def test_cli_run_success_exit_zero(monkeypatch, tmp_path, capsys):
    page = FakePage(documents={BASE_URL + "1": [listing_page(listing_block("A", "X", "2025-01-10"))]})
    _patch_session(monkeypatch, page=page)

    rc = cli.main(_argv(tmp_path, "--print-csv"))

    assert rc == 0
    out, _ = capsys.readouterr()
    assert '"A","X","2025-01-10"' in out
    assert "SUCCESS: 1 listing(s)" in out
    records = _jsonl(logging_utils.get_activity_log_path())
    assert records[-1]["event"] == "cli_run"
    assert records[-1]["ok"] is True
    assert "_meta" in records[-1]


def test_cli_run_no_listings_exit_one(monkeypatch, tmp_path, capsys):
    _patch_session(monkeypatch)

    rc = cli.main(_argv(tmp_path))

    assert rc == 1
    _, err = capsys.readouterr()
    assert "no listings" in err
    assert os.listdir(tmp_path / "logs")  # run log still written


def test_cli_run_structural_failure_exit_one(monkeypatch, tmp_path, capsys):
    _patch_session(monkeypatch, fail_open=SessionError("Browser launch failed"))

    rc = cli.main(_argv(tmp_path))

    assert rc == 1
    _, err = capsys.readouterr()
    assert "FAILURE: Browser launch failed" in err
    assert os.listdir(tmp_path / "logs")


def test_show_config(capsys):
    assert cli.main(["show-config", "--kwargs", "max_pages=3", "headless=false"]) == 0
    out, _ = capsys.readouterr()
    cfg = json.loads(out)
    assert cfg["max_pages"] == 3
    assert cfg["headless"] is False


def test_show_config_invalid(capsys):
    assert cli.main(["show-config", "--kwargs", "max_pages=-1"]) == 1
    _, err = capsys.readouterr()
    assert "configuration invalid" in err


def test_parse_kv_pairs_json_values():
    assert cli._parse_kv_pairs(["a=1", "b=true", "c=hello", "d=[1, 2]"]) == {
        "a": 1,
        "b": True,
        "c": "hello",
        "d": [1, 2],
    }


def test_cli_run_unwritable_log_dir_exit_one(monkeypatch, tmp_path, capsys):
    blocker = tmp_path / "logs-file"
    blocker.write_text("x", encoding="utf-8")
    page = FakePage(documents={BASE_URL + "1": [listing_page(listing_block("A", "X", "2025-01-10"))]})
    _patch_session(monkeypatch, page=page)

    rc = cli.main(_argv(tmp_path) + [f"log_dir={blocker}"])

    assert rc == 1
    assert os.path.exists(tmp_path / "out.csv")
    _, err = capsys.readouterr()
    assert "run log could not be written" in err
    assert _jsonl(logging_utils.get_activity_log_path())[-1]["log_path"] is None
