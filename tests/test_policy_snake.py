from games.game_snake import Direction, Food
from policies.policy_snake import policy


def place(env, start, direction, food):
    env.reset(seed=0, options={"start": start, "direction": direction})
    env.state.food = [Food(p) for p in food]


def test_moves_toward_nearest_food(env):
    place(env, (100, 100), Direction.RIGHT, [(100, 200), (600, 0)])
    assert policy(env) == [2, 0, 0]


def test_never_reverses(env):
    place(env, (200, 100), Direction.RIGHT, [(100, 100)])
    assert policy(env)[0] != 3


def test_avoids_leaving_the_screen(env):
    place(env, (620, 100), Direction.RIGHT, [(620, 0)])
    assert policy(env) == [1, 0, 0]


def test_autoplay_keeps_food_count_steady(env):
    env.reset(seed=7)
    for _ in range(300):
        obs, reward, terminated, truncated, info = env.step(policy(env))
        assert info["food_count"] == env.food_count
        assert not truncated
