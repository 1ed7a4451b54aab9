import pygame

from games.game_snake import _action_from_events


def key(event_type, k):
    return pygame.event.Event(event_type, key=k)


def test_arrow_key_maps_to_movement():
    assert _action_from_events([key(pygame.KEYDOWN, pygame.K_UP)]) == ([1, 0, 0], False)
    assert _action_from_events([key(pygame.KEYDOWN, pygame.K_RIGHT)]) == ([4, 0, 0], False)


def test_last_arrow_key_in_a_tick_wins():
    events = [key(pygame.KEYDOWN, pygame.K_UP), key(pygame.KEYDOWN, pygame.K_LEFT)]
    assert _action_from_events(events) == ([3, 0, 0], False)


def test_no_events_is_a_noop():
    assert _action_from_events([]) == ([0, 0, 0], False)


def test_other_keys_are_ignored():
    events = [key(pygame.KEYDOWN, pygame.K_a), key(pygame.KEYUP, pygame.K_UP)]
    assert _action_from_events(events) == ([0, 0, 0], False)


def test_escape_release_quits():
    action, quit_requested = _action_from_events([key(pygame.KEYUP, pygame.K_ESCAPE)])
    assert quit_requested


def test_escape_press_alone_does_not_quit():
    action, quit_requested = _action_from_events([key(pygame.KEYDOWN, pygame.K_ESCAPE)])
    assert not quit_requested


def test_window_close_quits():
    action, quit_requested = _action_from_events([pygame.event.Event(pygame.QUIT)])
    assert quit_requested
