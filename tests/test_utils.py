import pytest

from i18n_openai_sync.exceptions import MalformedInputError
from i18n_openai_sync.utils import (
    detect_indentation,
    detect_line_ending,
    get_language_name,
    glob_match,
    locale_from_path,
    namespace_from_path,
    parse_json,
    serialize_json,
)


@pytest.mark.parametrize(
    "code, expected",
    [
        ("de", "German"),
        ("fr", "French"),
        ("zh-TW", "Chinese (Traditional)"),
        ("zh_Hans", "Chinese (Simplified)"),
        ("pt-BR", "Portuguese (BR)"),
        ("en_US", "English (US)"),
    ],
)
def test_get_language_name(code, expected):
    assert get_language_name(code) == expected


def test_get_language_name_unknown():
    with pytest.raises(ValueError):
        get_language_name("xx")


def test_locale_and_namespace_from_path(tmp_path):
    path = tmp_path / "locales" / "pt-BR" / "common.json"
    assert locale_from_path(path) == "pt-BR"
    assert namespace_from_path(path) == "common"


def test_parse_json_reports_path():
    with pytest.raises(MalformedInputError) as exc_info:
        parse_json("{oops", "locales/en/common.json")
    assert exc_info.value.path == "locales/en/common.json"
    assert isinstance(exc_info.value, ValueError)


@pytest.mark.parametrize(
    "text, expected",
    [
        ('{\n  "a": 1\n}', 2),
        ('{\n    "a": 1\n}', 4),
        ('{\n\t"a": 1\n}', "\t"),
        ('{\r\n    "a": 1\r\n}', 4),
        ('{"a": 1}', 2),
    ],
)
def test_detect_indentation(text, expected):
    assert detect_indentation(text) == expected


def test_detect_line_ending():
    assert detect_line_ending('{\r\n}') == "\r\n"
    assert detect_line_ending('{\n}') == "\n"


def test_serialize_json_keeps_unicode_and_layout():
    text = serialize_json({"a": "Größe"}, indent=4, trailing_newline=True, line_ending="\r\n")
    assert text == '{\r\n    "a": "Größe"\r\n}\r\n'


@pytest.mark.parametrize(
    "path, pattern, expected",
    [
        ("locales/en/common.json", "**/locales/*/*.json", True),
        ("public/locales/en/common.json", "**/locales/*/*.json", True),
        ("locales/en/nested/common.json", "**/locales/*/*.json", False),
        ("src/a/b/locales/en/common.json", "src/**/locales/*/*.json", True),
        ("src/locales/en/common.json", "src/**/locales/*/*.json", True),
        ("lib/locales/en/common.json", "src/**/locales/*/*.json", False),
        ("src/App.tsx", "**/*.tsx", True),
        ("src/App.ts", "**/*.tsx", False),
    ],
)
def test_glob_match(path, pattern, expected):
    assert glob_match(path, pattern) is expected
