from games.game_snake import MOVEMENTS


def policy(env):
    # Strategy: Head for the nearest food by Manhattan distance. Only consider moves
    # that are not a reversal and that keep the head on screen and off the body;
    # among those prefer the ones that close the distance to the target.
    state = env.state
    snake = state.snake
    head = snake.head

    if not state.food:
        return [0, 0, 0]
    target = min(state.food, key=lambda f: abs(f.position - head).sum()).position

    safe = []
    for movement, direction in MOVEMENTS.items():
        if direction is snake.direction.opposite:
            continue
        new_head = head + direction.vector * snake.speed
        if env._is_out_of_bounds(new_head):
            continue
        # The tail moves out of the way this tick
        if any((abs(new_head - segment) < env.CELL_SIZE).all() for segment in snake.body[:-1]):
            continue
        safe.append((abs(target - new_head).sum(), movement))

    if not safe:
        return [0, 0, 0]  # No safe move, keep going and accept fate
    return [min(safe)[1], 0, 0]
