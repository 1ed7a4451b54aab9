import argparse
import logging
import sys
from enum import Enum

import gymnasium as gym
from gymnasium.spaces import MultiDiscrete
import numpy as np
import pygame

logger = logging.getLogger(__name__)


class Direction(Enum):
    UP = (0, -1)
    DOWN = (0, 1)
    LEFT = (-1, 0)
    RIGHT = (1, 0)

    @property
    def vector(self):
        return np.array(self.value, dtype=float)

    @property
    def opposite(self):
        return _OPPOSITES[self]

    @classmethod
    def from_name(cls, name):
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown direction: {name!r}") from None


_OPPOSITES = {
    Direction.UP: Direction.DOWN,
    Direction.DOWN: Direction.UP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}

# Movement component of the action: 0-4 none/up/down/left/right
MOVEMENTS = {
    1: Direction.UP,
    2: Direction.DOWN,
    3: Direction.LEFT,
    4: Direction.RIGHT,
}


# Helper classes for game entities
class Snake:
    """Ordered body of grid-aligned positions, head first."""

    def __init__(self, position, direction, speed):
        self.body = [np.array(position, dtype=float)]
        self.direction = direction
        self.speed = speed

    def __len__(self):
        return len(self.body)

    @property
    def head(self):
        return self.body[0]

    def advance(self):
        new_head = self.head + self.direction.vector * self.speed
        self.body.insert(0, new_head)
        self.body.pop()

    def grow(self):
        # The duplicate is dropped by the next advance, so the tail stays put for one tick
        self.body.append(self.body[-1].copy())

    def set_direction(self, direction):
        """Commit `direction` unless it reverses the current heading.

        Returns True if the heading was changed (or already matched).
        """
        if direction is self.direction.opposite:
            return False
        self.direction = direction
        return True

    def collides_with_self(self, threshold):
        head = self.head
        for segment in self.body[1:]:
            if np.linalg.norm(head - segment) < threshold:
                return True
        return False

    def draw(self, surface, size, color, head_color):
        # Tail first so the head is always on top
        for i in range(len(self.body) - 1, -1, -1):
            x, y = self.body[i]
            rect = pygame.Rect(int(x), int(y), size, size)
            pygame.draw.rect(surface, head_color if i == 0 else color, rect)


class Food:
    def __init__(self, position):
        self.position = np.array(position, dtype=float)

    @classmethod
    def spawn(cls, rng, columns, rows, stride, origin=(0, 0)):
        """Pick one of `columns` x `rows` positions spaced `stride` apart from `origin`."""
        ox, oy = origin
        x = ox + int(rng.integers(0, columns)) * stride
        y = oy + int(rng.integers(0, rows)) * stride
        return cls((x, y))

    def is_eaten_by(self, head, cell_size):
        return np.linalg.norm(head - self.position) < cell_size

    def draw(self, surface, size, color):
        x, y = self.position
        pygame.draw.rect(surface, color, pygame.Rect(int(x), int(y), size, size))


class GameState:
    """Everything that is thrown away on a terminal condition."""

    def __init__(self, snake, food, score=0):
        self.snake = snake
        self.food = food
        self.score = score


class GameEnv(gym.Env):
    metadata = {"render_modes": ["rgb_array"], "render_fps": 10}

    # Must be a short, user-facing control string:
    user_guide = "Controls: Use arrow keys to steer the snake. Press Escape to quit."

    # Must be a short, user-facing description of the game:
    game_description = (
        "Classic arcade snake. Eat the red food to grow and score. Leaving the screen "
        "or running into your own body starts a fresh game."
    )

    # Should frames auto-advance or wait for user input?
    auto_advance = True

    # --- Constants ---
    SCREEN_WIDTH = 640
    SCREEN_HEIGHT = 400
    CELL_SIZE = 20
    GRID_WIDTH = SCREEN_WIDTH // CELL_SIZE
    GRID_HEIGHT = SCREEN_HEIGHT // CELL_SIZE

    SPEED = 20
    FOOD_COUNT = 10
    TICK_RATE = 10

    # Colors
    COLOR_BG = (0, 0, 0)
    COLOR_SNAKE = (0, 228, 48)
    COLOR_SNAKE_HEAD = (150, 255, 150)
    COLOR_FOOD = (230, 41, 55)
    COLOR_TEXT = (255, 255, 255)

    def __init__(self, render_mode="rgb_array", speed=None, food_count=None):
        super().__init__()
        self.render_mode = render_mode

        self.speed = self.SPEED if speed is None else speed
        self.food_count = self.FOOD_COUNT if food_count is None else food_count
        if self.speed <= 0 or self.speed % self.CELL_SIZE:
            raise ValueError(
                f"speed must be a positive multiple of the cell size ({self.CELL_SIZE}), got {self.speed}"
            )
        if self.food_count <= 0:
            raise ValueError(f"food_count must be positive, got {self.food_count}")

        # EXACT spaces:
        self.observation_space = gym.spaces.Box(
            low=0, high=255, shape=(self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3), dtype=np.uint8
        )
        self.action_space = MultiDiscrete([5, 2, 2])

        # Pygame setup
        pygame.init()
        pygame.font.init()
        self.screen = pygame.Surface((self.SCREEN_WIDTH, self.SCREEN_HEIGHT))
        self.font = pygame.font.Font(None, 30)

        # Game state is built in reset()
        self.state = None
        self.steps = 0
        self.resets = 0
        self.terminal_event = None

        logger.debug("GameEnv configured: speed=%s food_count=%s", self.speed, self.food_count)
        self.validate_implementation()

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        options = options or {}

        start = options.get("start")
        if start is not None:
            start = self._check_start(start)
        direction = options.get("direction")
        if isinstance(direction, str):
            direction = Direction.from_name(direction)
        elif direction is not None and not isinstance(direction, Direction):
            raise ValueError(f"direction must be a Direction or its name, got {direction!r}")

        self.steps = 0
        self.resets = 0
        self.terminal_event = None
        self.state = self._new_state(start, direction)

        return self._get_observation(), self._get_info()

    def step(self, action):
        movement = action[0]  # 0-4: none/up/down/left/right
        # action[1] and action[2] (buttons) have no meaning in this game

        state = self.state
        self.steps += 1
        self.terminal_event = None
        reward = 0

        # 1. Queued direction change
        if movement in MOVEMENTS:
            state.snake.set_direction(MOVEMENTS[movement])

        # 2. Move
        state.snake.advance()

        # 3. Self-collision is tested before eating; a freshly grown tail overlaps itself
        if state.snake.collides_with_self(self.CELL_SIZE):
            self.terminal_event = "self_collision"
        else:
            # 4. Eat, grow, replenish 1:1
            reward += self._consume_food()

            # 5. Bounds
            if self._is_out_of_bounds(state.snake.head):
                self.terminal_event = "out_of_bounds"

        terminated = self.terminal_event is not None
        if terminated:
            logger.info("Run ended (%s) with score %d after %d ticks",
                        self.terminal_event, state.score, self.steps)
            reward = -1
            self.resets += 1
            self.state = self._new_state()

        return (
            self._get_observation(),
            reward,
            terminated,
            False,  # truncated always False
            self._get_info()
        )

    def _new_state(self, start=None, direction=None):
        if start is None:
            start = (
                int(self.np_random.integers(0, self.GRID_WIDTH)) * self.CELL_SIZE,
                int(self.np_random.integers(0, self.GRID_HEIGHT)) * self.CELL_SIZE,
            )
        if direction is None:
            direction = list(Direction)[int(self.np_random.integers(0, len(Direction)))]

        snake = Snake(start, direction, self.speed)
        food = [self._spawn_food(start) for _ in range(self.food_count)]
        logger.debug("New state: snake at %s heading %s", start, direction.name)
        return GameState(snake, food)

    def _spawn_food(self, anchor):
        # The head only ever visits positions congruent to its start modulo the speed
        ox, oy = (int(c) % self.speed for c in anchor)
        columns = (self.SCREEN_WIDTH - self.CELL_SIZE - ox) // self.speed + 1
        rows = (self.SCREEN_HEIGHT - self.CELL_SIZE - oy) // self.speed + 1
        return Food.spawn(self.np_random, columns, rows, self.speed, (ox, oy))

    def _consume_food(self):
        state = self.state
        head = state.snake.head
        eaten = [food for food in state.food if food.is_eaten_by(head, self.CELL_SIZE)]
        if not eaten:
            return 0

        for _ in eaten:
            state.snake.grow()
            state.score += 1
        state.food = [food for food in state.food if food not in eaten]
        state.food.extend(self._spawn_food(head) for _ in eaten)
        return len(eaten)

    def _is_out_of_bounds(self, position):
        x, y = position
        return (
            x < 0 or y < 0
            or x > self.SCREEN_WIDTH - self.CELL_SIZE
            or y > self.SCREEN_HEIGHT - self.CELL_SIZE
        )

    def _check_start(self, start):
        x, y = start
        if x % self.CELL_SIZE or y % self.CELL_SIZE or self._is_out_of_bounds((x, y)):
            raise ValueError(f"start must be a grid-aligned on-screen position, got {start!r}")
        return (x, y)

    def _get_observation(self):
        # Clear screen with background
        self.screen.fill(self.COLOR_BG)

        self._render_game()
        self._render_ui()

        # Convert to numpy array (EXACT format required)
        arr = pygame.surfarray.array3d(self.screen)
        return np.transpose(arr, (1, 0, 2)).astype(np.uint8)

    def _render_game(self):
        for food in self.state.food:
            food.draw(self.screen, self.CELL_SIZE, self.COLOR_FOOD)
        self.state.snake.draw(self.screen, self.CELL_SIZE, self.COLOR_SNAKE, self.COLOR_SNAKE_HEAD)

    def _render_ui(self):
        score_text = self.font.render(f"Score: {self.state.score}", True, self.COLOR_TEXT)
        self.screen.blit(score_text, (10, 10))

    def _get_info(self):
        return {
            "score": self.state.score,
            "steps": self.steps,
            "length": len(self.state.snake),
            "food_count": len(self.state.food),
            "resets": self.resets,
            "terminal_event": self.terminal_event,
        }

    def render(self):
        return self._get_observation()

    def close(self):
        pygame.quit()

    def validate_implementation(self):
        '''
        Call this at the end of __init__ to verify implementation:
        '''
        # Test action space
        assert self.action_space.shape == (3,)
        assert self.action_space.nvec.tolist() == [5, 2, 2]

        # Test reset
        obs, info = self.reset()
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert obs.dtype == np.uint8
        assert isinstance(info, dict)
        assert info["length"] == 1
        assert info["food_count"] == self.food_count

        # Test step
        test_action = self.action_space.sample()
        obs, reward, term, trunc, info = self.step(test_action)
        assert obs.shape == (self.SCREEN_HEIGHT, self.SCREEN_WIDTH, 3)
        assert isinstance(reward, (int, float))
        assert isinstance(term, bool)
        assert trunc == False
        assert isinstance(info, dict)
        assert info["food_count"] == self.food_count

        print("✓ Implementation validated successfully")


KEY_MOVEMENTS = {
    pygame.K_UP: 1,
    pygame.K_DOWN: 2,
    pygame.K_LEFT: 3,
    pygame.K_RIGHT: 4,
}


def _action_from_events(events):
    """Fold one tick's worth of pygame events into an action.

    Returns `(action, quit_requested)`. Only the last arrow key pressed counts.
    """
    action = [0, 0, 0]
    quit_requested = False
    for event in events:
        if event.type == pygame.QUIT:
            quit_requested = True
        elif event.type == pygame.KEYUP and event.key == pygame.K_ESCAPE:
            quit_requested = True
        elif event.type == pygame.KEYDOWN and event.key in KEY_MOVEMENTS:
            action[0] = KEY_MOVEMENTS[event.key]
    return action, quit_requested


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Classic arcade snake")
    parser.add_argument("--speed", type=int, default=GameEnv.SPEED,
                        help="pixels per tick, a multiple of the cell size")
    parser.add_argument("--food", type=int, default=GameEnv.FOOD_COUNT,
                        help="number of food items on screen")
    parser.add_argument("--fps", type=int, default=GameEnv.TICK_RATE, help="ticks per second")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--autoplay", action="store_true",
                        help="let the greedy policy steer instead of the keyboard")
    parser.add_argument("--log-level", default="WARNING")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    env = GameEnv(render_mode="rgb_array", speed=args.speed, food_count=args.food)
    policy = None
    if args.autoplay:
        from policies.policy_snake import policy

    # --- Manual Play ---
    # Requires a display; the environment itself is headless.
    try:
        screen = pygame.display.set_mode((GameEnv.SCREEN_WIDTH, GameEnv.SCREEN_HEIGHT))
        pygame.display.set_caption("Snake")
        clock = pygame.time.Clock()

        obs, info = env.reset(seed=args.seed)

        print("--- Manual Play ---")
        print(env.user_guide)

        while True:
            action, quit_requested = _action_from_events(pygame.event.get())
            if quit_requested:
                sys.exit(0)

            if policy is not None:
                action = policy(env)

            obs, reward, terminated, truncated, info = env.step(action)
            if terminated:
                print(f"Game Over! Score: {info['score']}, restarting")

            surf = pygame.surfarray.make_surface(np.transpose(obs, (1, 0, 2)))
            screen.blit(surf, (0, 0))
            pygame.display.flip()

            # Sleeps for whatever is left of the minimum frame time
            clock.tick(args.fps)

    except pygame.error as e:
        print(f"Pygame display error: {e}")
        print("Manual play requires a display. The environment itself is headless and should work.")
    finally:
        env.close()


if __name__ == '__main__':
    main()
