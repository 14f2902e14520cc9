import pytest

from castaway_league.core.errors import AllocationExhausted
from castaway_league.services.invite_codes import (
    INVITE_ALPHABET, allocate_invite_code, generate_invite_code, normalize_invite_code,
)


def test_generated_codes_use_the_unambiguous_alphabet() -> None:
    for _ in range(200):
        code = generate_invite_code()
        assert len(code) == 6
        assert set(code) <= set(INVITE_ALPHABET)
    assert not set("01IO") & set(INVITE_ALPHABET)


def test_normalize_strips_and_uppercases() -> None:
    assert normalize_invite_code("  abc234\n") == "ABC234"


async def test_allocate_returns_first_free_code() -> None:
    codes = iter(["AAAAAA", "BBBBBB", "CCCCCC"])
    taken = {"AAAAAA", "BBBBBB"}

    async def is_taken(code: str) -> bool:
        return code in taken

    assert await allocate_invite_code(is_taken, generate=lambda: next(codes)) == "CCCCCC"


async def test_allocate_gives_up_after_ten_collisions() -> None:
    calls = []

    async def always_taken(code: str) -> bool:
        calls.append(code)
        return True

    with pytest.raises(AllocationExhausted):
        await allocate_invite_code(always_taken)
    assert len(calls) == 10
