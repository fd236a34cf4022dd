# tests/unit/test_main.py — v2
"""Tests for main.py — CLI entry point."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import pytest

from reqcache.api.facade import CacheFacade
from reqcache.config.settings import Settings
from reqcache.main import _build_parser, main


@pytest.fixture(autouse=True)
def _isolated_cli(tmp_path, monkeypatch):
    """Run every command against a temp cache and no local .env."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CACHE_ROOT", str(tmp_path / "cache"))
    yield
    root = logging.getLogger("reqcache")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.NOTSET)


def _seed(tmp_path: Path, coro_factory) -> None:
    s = Settings(_env_file=None, cache_root=tmp_path / "cache")
    facade = CacheFacade.from_settings(s)
    try:
        asyncio.run(coro_factory(facade))
    finally:
        facade.close()


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_delete_subcommand(self):
        args = _build_parser().parse_args(["delete", "a.docx", "b.docx"])
        assert args.command == "delete"
        assert args.names == ["a.docx", "b.docx"]

    def test_global_options(self):
        args = _build_parser().parse_args(["--backend", "sqlite", "--cache-root", "/tmp/c", "stats"])
        assert args.backend == "sqlite"
        assert args.cache_root == Path("/tmp/c")

    def test_classify_subcommand(self):
        args = _build_parser().parse_args(["classify", "doc.txt", "--strict", "--json"])
        assert args.file == Path("doc.txt")
        assert args.strict is True
        assert args.json is True

    def test_pushed_optional_name(self):
        assert _build_parser().parse_args(["pushed"]).name is None


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

class TestCommands:
    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_stats_empty(self, capsys):
        assert main(["stats"]) == 0
        assert "Entries:    0" in capsys.readouterr().out

    def test_list_and_delete(self, tmp_path, capsys):
        async def seed(facade):
            await facade.store_document_cached_results("a.docx", "requirements", "| BR-001 | x |")

        _seed(tmp_path, seed)
        assert main(["list"]) == 0
        assert "a.docx\t1\trequirements" in capsys.readouterr().out

        assert main(["delete", "a.docx"]) == 0
        assert "Deleted 1 documents." in capsys.readouterr().out
        assert main(["delete", "a.docx"]) == 1
        assert "Document not found" in capsys.readouterr().out

    def test_clear_confirmed(self, tmp_path, capsys):
        async def seed(facade):
            await facade.store_document_cached_results("a.docx", "analysis", "A")

        _seed(tmp_path, seed)
        assert main(["clear", "--yes"]) == 0
        assert "Removed 1 cache entries." in capsys.readouterr().out

    def test_clear_aborted(self, monkeypatch, capsys):
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert main(["clear"]) == 1
        assert "Aborted." in capsys.readouterr().out

    def test_classify(self, tmp_path, capsys, login_content):
        path = tmp_path / "login.txt"
        path.write_text(login_content, encoding="utf-8")
        assert main(["classify", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Elements:    2" in out
        assert "requirement:" in out

    def test_classify_missing_file(self, tmp_path):
        assert main(["classify", str(tmp_path / "nope.txt")]) == 1

    def test_digest(self, tmp_path, capsys):
        from reqcache.cache.fingerprint import digest_bytes, digest_text

        path = tmp_path / "doc.txt"
        path.write_bytes(b"some content")
        assert main(["digest", str(path)]) == 0
        assert capsys.readouterr().out.strip() == digest_bytes(b"some content").hash
        assert main(["digest", str(path), "--context", "ctx"]) == 0
        assert capsys.readouterr().out.strip() == digest_text("some content", "ctx").hash

    def test_pushed(self, tmp_path, capsys):
        async def seed(facade):
            await facade.pushed.mark_published("a.docx", 0, ["T-1"])

        _seed(tmp_path, seed)
        assert main(["pushed"]) == 0
        assert '"document_name": "a.docx"' in capsys.readouterr().out
        assert main(["pushed", "missing.docx"]) == 1
