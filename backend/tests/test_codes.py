import pytest

from quips.game import codes
from quips.game.errors import InternalError, ValidationError


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(200):
        code = codes.generate_room_code(lambda c: False)
        assert len(code) == 4
        assert set(code) <= set(codes.CODE_CHARS)
    assert not set("ILO01") & set(codes.CODE_CHARS)


def test_generation_retries_on_collision():
    taken = []

    def exists(code):
        taken.append(code)
        return len(taken) < 3

    codes.generate_room_code(exists)
    assert len(taken) == 3


def test_generation_gives_up_after_fifty_attempts():
    attempts = []

    def exists(code):
        attempts.append(code)
        return True

    with pytest.raises(InternalError):
        codes.generate_room_code(exists)
    assert len(attempts) == 50


def test_normalize_code():
    assert codes.normalize_code(" abcd ") == "ABCD"
    assert codes.normalize_code(None) == ""


@pytest.mark.parametrize("name,expected", [("Al", "Al"), ("  Bo  ", "Bo"), ("x" * 18, "x" * 18)])
def test_normalize_name_accepts(name, expected):
    assert codes.normalize_name(name) == expected


def test_normalize_avatar():
    assert codes.normalize_avatar(None) == "🎤"
    assert codes.normalize_avatar(" 🦄 ") == "🦄"
    assert len(codes.normalize_avatar("a" * 50)) == 8


def test_sanitize_response():
    assert codes.sanitize_response("  hi  ") == "hi"
    assert len(codes.sanitize_response("y" * 161)) == 160
    with pytest.raises(ValidationError):
        codes.sanitize_response(" ")


def test_sanitize_custom_prompt_bounds():
    assert codes.sanitize_custom_prompt("  Five!  ") == "Five!"
    assert codes.sanitize_custom_prompt("q" * 150) == "q" * 150
    with pytest.raises(ValidationError):
        codes.sanitize_custom_prompt("four")
