import os

os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

import pytest

from games.game_snake import GameEnv


@pytest.fixture
def env():
    env = GameEnv()
    yield env
    env.close()
