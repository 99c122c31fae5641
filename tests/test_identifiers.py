from __future__ import annotations

import io

from cdnctl.core.services.identifiers import (
    construct_file_url,
    extract_key,
    public_url,
    resolve_identifiers,
)


class TtyStream(io.StringIO):
    def isatty(self) -> bool:
        return True


def test_file_with_duplicate_lines_resolves_to_unique_identifiers(tmp_path):
    urls = tmp_path / "urls.txt"
    urls.write_text("x.png\nx.png\ny.png\n", encoding="utf-8")

    resolved = resolve_identifiers([], urls, stdin=io.StringIO(""))

    assert resolved == ["x.png", "y.png"]


def test_file_is_used_exclusively(tmp_path):
    urls = tmp_path / "urls.txt"
    urls.write_text("  a.png  \n\n\t\nb.png", encoding="utf-8")
    stdin = io.StringIO("piped.png\n")

    resolved = resolve_identifiers(["inline.png"], urls, stdin=stdin)

    assert resolved == ["a.png", "b.png"]
    # stdin was not consumed
    assert stdin.read() == "piped.png\n"


def test_inline_and_piped_stdin_are_merged_and_deduplicated():
    stdin = io.StringIO("b.png\n\n  c.png \na.png\n")

    resolved = resolve_identifiers(["a.png", "b.png"], None, stdin=stdin)

    assert resolved == ["a.png", "b.png", "c.png"]


def test_interactive_stdin_is_not_read():
    stdin = TtyStream("ignored.png\n")

    assert resolve_identifiers(["a.png"], stdin=stdin) == ["a.png"]


def test_missing_file_falls_back_to_arguments(tmp_path):
    resolved = resolve_identifiers(["a.png"], tmp_path / "nope.txt", stdin=io.StringIO(""))

    assert resolved == ["a.png"]


def test_nothing_provided_is_an_empty_list():
    assert resolve_identifiers([], None, stdin=io.StringIO("")) == []


def test_extract_key_from_url_and_bare_key():
    assert extract_key("https://cdn.example.com/img/a.png", "cdn.example.com") == "img/a.png"
    assert extract_key("https://cdn.example.com/a.png?v=2#top", "cdn.example.com") == "a.png"
    assert extract_key("/img/a.png", "cdn.example.com") == "img/a.png"
    assert extract_key("a.png", "cdn.example.com") == "a.png"


def test_public_url_keeps_cdn_urls_and_builds_the_rest():
    assert public_url("https://cdn.example.com/a.png", "cdn.example.com") == "https://cdn.example.com/a.png"
    assert public_url("img/a.png", "cdn.example.com") == "https://cdn.example.com/img/a.png"
    assert construct_file_url("/a.png", "cdn.example.com/") == "https://cdn.example.com/a.png"
