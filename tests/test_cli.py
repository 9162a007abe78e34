import json

import pytest

import verses


@pytest.fixture
def cli(tmp_path):
    base = ["--db", str(tmp_path / "verses.sqlite"), "--widget-state", str(tmp_path / "widget.json")]

    def run(*argv):
        return verses.main(base + list(argv))

    run.tmp_path = tmp_path
    return run


def test_books_and_verse_lookup(cli, capsys):
    assert cli("books") == 0
    out = capsys.readouterr().out
    assert "Genesis" in out and "Jude" in out

    assert cli("verse", "John 3:16") == 0
    assert "For God so loved the world" in capsys.readouterr().out

    assert cli("verse", "John 99:1") == 1


def test_expand_prints_range(cli, capsys):
    assert cli("expand", "John 3:14") == 0
    assert "John 3:14-15" in capsys.readouterr().out


def test_schedule_promote_and_history(cli, capsys):
    assert cli("schedule", "Psalms 23:1", "--when", "2020-01-01T09:00:00+00:00") == 0
    out = capsys.readouterr().out
    assert "Scheduled Psalms 23:1" in out

    assert cli("pending") == 0
    capsys.readouterr()

    # a past custom time moves one day later, which is still due
    assert cli("promote") == 0
    assert "Psalms 23:1" in capsys.readouterr().out

    assert cli("history") == 0
    assert "Psalms 23:1" in capsys.readouterr().out

    state = json.loads((cli.tmp_path / "widget.json").read_text(encoding="utf-8"))
    assert state["currentReference"] == "Psalms 23:1"


def test_settings_and_populate(cli, capsys):
    assert cli("settings", "--frequency", "custom", "--hours", "6") == 0
    assert cli("settings") == 0
    assert "refreshFrequency=custom, customHours=6" in capsys.readouterr().out

    assert cli("populate", "--count", "3") == 0
    assert cli("settings", "--hours", "0") == 1

    state = json.loads((cli.tmp_path / "widget.json").read_text(encoding="utf-8"))
    assert state["refreshFrequency"] == "custom"
    assert state["customHours"] == 6


def test_theme_and_collections(cli, capsys):
    assert cli("theme", "--name", "dusk", "--primary", "#224466") == 0
    assert "theme=dusk" in capsys.readouterr().out

    assert cli("collection-add", "Comfort", "John 3:16", "Psalms 23:1") == 0
    assert cli("collections") == 0
    out = capsys.readouterr().out
    assert "Comfort" in out


def test_missing_corpus_fails_cleanly(cli, capsys):
    assert cli("--corpus", str(cli.tmp_path / "none.json"), "status") == 1
    assert "Could not load corpus" in capsys.readouterr().out


def test_import_bible_from_csv(tmp_path):
    table = tmp_path / "bible.csv"
    table.write_text("book,chapter,verse,text\nJohn,11,35,Jesus wept.\n", encoding="utf-8")
    out = tmp_path / "corpus.json"
    assert verses.main(["import-bible", str(table), str(out), "--version", "kjv"]) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["version"] == "KJV"


def test_settings_come_from_environment_then_flags(monkeypatch, tmp_path):
    monkeypatch.setenv("BVA_DB_PATH", str(tmp_path / "env.sqlite"))
    monkeypatch.setenv("BVA_SCOPE_START", "John")
    monkeypatch.delenv("BVA_WIDGET_URL", raising=False)

    args = verses.build_parser().parse_args(["--widget-url", "http://widget.local/hook", "status"])
    settings = verses.resolve_settings(args)
    assert settings.db_path == tmp_path / "env.sqlite"
    assert settings.scope_start == "John"
    assert settings.widget_url == "http://widget.local/hook"
