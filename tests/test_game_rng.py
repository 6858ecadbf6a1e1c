import pytest

from game_rng import GameRNG


def test_same_seed_gives_same_sequence():
    a = GameRNG(seed=1234)
    b = GameRNG(seed=1234)
    assert [a.get_int(0, 100) for _ in range(20)] == [b.get_int(0, 100) for _ in range(20)]


def test_get_int_is_inclusive():
    rng = GameRNG(seed=7)
    values = {rng.get_int(1, 3) for _ in range(300)}
    assert values == {1, 2, 3}


def test_get_int_single_value_range():
    rng = GameRNG(seed=7)
    assert rng.get_int(5, 5) == 5


def test_get_int_rejects_inverted_range():
    with pytest.raises(ValueError):
        GameRNG(seed=1).get_int(3, 1)


def test_get_randrange_excludes_stop():
    rng = GameRNG(seed=99)
    values = {rng.get_randrange(0, 4) for _ in range(400)}
    assert values == {0, 1, 2, 3}


def test_get_randrange_with_step_and_single_argument():
    rng = GameRNG(seed=3)
    assert {rng.get_randrange(0, 10, 5) for _ in range(100)} <= {0, 5}
    assert 0 <= rng.get_randrange(3) < 3


def test_get_randrange_empty_range_raises():
    rng = GameRNG(seed=3)
    with pytest.raises(ValueError):
        rng.get_randrange(2, 2)
    with pytest.raises(ValueError):
        rng.get_randrange(0, 5, 0)


def test_choice_returns_member_and_rejects_empty():
    rng = GameRNG(seed=5)
    items = ["a", "b", "c"]
    for _ in range(20):
        assert rng.choice(items) in items
    with pytest.raises(ValueError):
        rng.choice([])


def test_roll_dice_totals_rolls_and_modifier():
    rng = GameRNG(seed=11)
    result = rng.roll_dice(3, 6, modifier=2)
    assert len(result["rolls"]) == 3
    assert all(1 <= r <= 6 for r in result["rolls"])
    assert result["total"] == sum(result["rolls"]) + 2


def test_state_round_trip_restores_sequence(tmp_path):
    rng = GameRNG(seed=42)
    rng.get_int(0, 10)
    state_file = tmp_path / "rng.json"
    rng.save_state_to_file(str(state_file))
    expected = [rng.get_int(0, 1000) for _ in range(5)]

    restored = GameRNG(seed=0)
    restored.load_state_from_file(str(state_file))
    assert restored.initial_seed == 42
    assert [restored.get_int(0, 1000) for _ in range(5)] == expected


def test_reset_restarts_from_seed():
    rng = GameRNG(seed=8)
    first = [rng.get_int(0, 50) for _ in range(5)]
    rng.reset(seed=8)
    assert [rng.get_int(0, 50) for _ in range(5)] == first
