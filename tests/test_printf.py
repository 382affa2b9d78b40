import pytest

from sixfs.printf import (
    LOWER_DIGITS,
    UPPER_DIGITS,
    format_int,
    format_kernel,
    format_user,
)


def test_format_int_basic():
    assert format_int(0) == "0"
    assert format_int(-5, 10, True) == "-5"
    assert format_int(255, 16, False, UPPER_DIGITS) == "FF"
    assert format_int(255, 16, False, LOWER_DIGITS) == "ff"


def test_format_int_unsigned_wraps_to_32_bits():
    assert format_int(-1, 16, False, UPPER_DIGITS) == "FFFFFFFF"
    assert format_int(0xFFFFFFFF, 10, True) == "-1"


def test_format_int_bad_base():
    with pytest.raises(ValueError):
        format_int(1, 17)


def test_user_directives():
    assert format_user("%s %d!", "pid", 42) == "pid 42!"
    assert format_user("%x/%p", 255, 16) == "FF/10"
    assert format_user("%c", 65) == "A"
    assert format_user("%s", None) == "(null)"
    assert format_user("100%%") == "100%"


def test_user_unknown_and_trailing_percent():
    assert format_user("%q") == "%q"
    assert format_user("abc%") == "abc"


def test_kernel_directives():
    assert format_kernel("cpu%d: starting %d\n", 0, 0) == "cpu0: starting 0\n"
    assert format_kernel("%x", 255) == "ff"
    assert format_kernel("%s", None) == "(null)"


def test_kernel_has_no_char_directive():
    assert format_kernel("%c", 65) == "%c"


def test_kernel_null_fmt():
    with pytest.raises(ValueError):
        format_kernel(None)


def test_missing_argument():
    with pytest.raises(TypeError):
        format_user("%d")