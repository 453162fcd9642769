from __future__ import annotations

import pytest

from meetrelay.core.codes import ALPHANUMERIC, DIGITS, generate_meeting_code, resolve_alphabet


def test_numeric_code_is_six_digits_without_leading_zero() -> None:
    for _ in range(200):
        code = generate_meeting_code()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"


def test_alphanumeric_code_uses_alphabet() -> None:
    code = generate_meeting_code(8, ALPHANUMERIC)
    assert len(code) == 8
    assert set(code) <= set(ALPHANUMERIC)


def test_resolve_alphabet() -> None:
    assert resolve_alphabet("digits") == DIGITS
    assert resolve_alphabet("alphanumeric") == ALPHANUMERIC
    with pytest.raises(ValueError):
        resolve_alphabet("emoji")


def test_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        generate_meeting_code(0)
