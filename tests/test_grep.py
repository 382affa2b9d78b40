import io

import pytest

from sixfs.grep import grep, main, match, match_star


@pytest.mark.parametrize(
    "regex, text, expected",
    [
        ("^ab", "abc", True),
        ("^bc", "abc", False),
        ("b.d", "abcd", True),
        ("a*b", "aaab", True),
        ("a*b", "ccc", False),
        ("x$", "abx", True),
        ("x$", "xab", False),
        ("", "", True),
        ("^$", "", True),
        ("^$", "a", False),
        (".*", "anything", True),
        ("^a.*z$", "abcz", True),
        ("^a.*z$", "abczq", False),
    ],
)
def test_match(regex, text, expected):
    assert match(regex, text) is expected


def test_match_star_direct():
    assert match_star("a", "b", "aaab") is True
    assert match_star("a", "b", "ccb") is False
    assert match_star(".", "z", "xyz") is True


def test_grep_selects_lines():
    out = list(grep("oo", io.StringIO("foo\nbar\nboot\n")))
    assert out == ["foo\n", "boot\n"]


def test_grep_drops_unterminated_last_line():
    assert list(grep("foo", io.StringIO("foo\nbar\nfood"))) == ["foo\n"]


def test_grep_truncates_overlong_lines():
    text = "a" * 2000 + "\n"
    out = list(grep("^a*$", io.StringIO(text)))
    assert len(out) == 1
    assert len(out[0]) < len(text)
    assert out[0].endswith("\n")


def test_main_with_files(tmp_path, capsys):
    f = tmp_path / "in.txt"
    f.write_text("alpha\nbeta\ngamma\n")
    assert main(["^.a", str(f)]) == 0
    assert capsys.readouterr().out == "gamma\n"


def test_main_usage(capsys):
    assert main([]) == 1
    assert "usage: grep" in capsys.readouterr().err


def test_main_cannot_open(tmp_path, capsys):
    missing = tmp_path / "nope"
    assert main(["x", str(missing)]) == 1
    assert "grep: cannot open" in capsys.readouterr().out