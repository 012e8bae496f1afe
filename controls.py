from entities import FLYING

# Held-key bindings (ursina key names)
FORWARD_KEYS = ('w', 'up arrow')
BACK_KEYS = ('s', 'down arrow')
LEFT_KEYS = ('a', 'left arrow')
RIGHT_KEYS = ('d', 'right arrow')
ROLL_LEFT_KEYS = ('q',)
ROLL_RIGHT_KEYS = ('e',)

# Single-press actions
BAIL_OUT_KEY = 'f'
FIRE_KEY = 'space'
LEAVE_KEY = 'escape'
HELP_KEY = 'h'


def held_key_set(held_keys):
    """Collapse ursina's held_keys mapping into the set of keys currently down"""
    return frozenset(key.lower() for key, value in held_keys.items() if value)


def is_held(keys, bindings):
    return any(key in keys for key in bindings)


def handle_input(key, simulation):
    """Dispatch a key press to the simulation. Returns True when the key was consumed."""
    key = key.lower()

    if key == FIRE_KEY:
        # Shooting only exists in the air; Simulation.fire ignores it elsewhere
        simulation.fire()
        return True

    if key == BAIL_OUT_KEY and simulation.pilot.mode == FLYING:
        simulation.bail_out()
        return True

    return False
