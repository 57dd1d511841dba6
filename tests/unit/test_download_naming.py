"""Local file naming for downloaded attachments."""
from __future__ import annotations

from pathlib import Path

import pytest

from kintone_mcp.backend.files import (
    fallback_filename,
    filename_from_headers,
    safe_filename,
    unique_path,
)


def test_plain_filename_parameter() -> None:
    assert filename_from_headers('attachment; filename="report.pdf"') == "report.pdf"


def test_extended_filename_wins_over_plain() -> None:
    header = (
        "attachment; filename=\"fallback.txt\"; "
        "filename*=UTF-8''%E8%A6%8B%E7%A9%8D.txt"
    )
    assert filename_from_headers(header) == "見積.txt"


def test_mime_encoded_word_is_decoded() -> None:
    header = 'attachment; filename="=?UTF-8?B?5L2P5omALnR4dA==?="'
    assert filename_from_headers(header) == "住所.txt"


@pytest.mark.parametrize("header", [None, "", "inline", "attachment; size=10"])
def test_missing_filename_returns_none(header: str | None) -> None:
    assert filename_from_headers(header) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("../../etc/passwd", "passwd"),
        ("C:\\temp\\evil.exe", "evil.exe"),
        ("..", "download"),
        ("   ", "download"),
        ("notes.md", "notes.md"),
    ],
)
def test_safe_filename_strips_directories(raw: str, expected: str) -> None:
    assert safe_filename(raw) == expected


def test_fallback_filename_uses_content_type_extension() -> None:
    assert fallback_filename("20240101ABCDEF", "application/pdf") == "20240101ABCDEF.pdf"
    assert fallback_filename("key", None) == "key"


def test_unique_path_never_overwrites(tmp_path: Path) -> None:
    first = unique_path(tmp_path, "report.pdf")
    assert first == tmp_path / "report.pdf"
    first.write_bytes(b"one")

    second = unique_path(tmp_path, "report.pdf")
    assert second.name == "report (1).pdf"
    second.write_bytes(b"two")

    assert unique_path(tmp_path, "report.pdf").name == "report (2).pdf"
    assert first.read_bytes() == b"one"


def test_unique_path_without_extension(tmp_path: Path) -> None:
    (tmp_path / "README").write_text("x")
    assert unique_path(tmp_path, "README").name == "README (1)"
