from ursina import Quat, Vec3

FLYING = 'flying'
PARACHUTING = 'parachuting'
GROUND = 'ground'
MOVEMENT_MODES = (FLYING, PARACHUTING, GROUND)

MAX_HEALTH = 100


def vec3_copy(v):
    return Vec3(v[0], v[1], v[2])


def vec3_lerp(start, end, t):
    """Linear interpolation between two Vec3 vectors"""
    return start + (end - start) * t


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def vec3_to_wire(v):
    return {'x': float(v[0]), 'y': float(v[1]), 'z': float(v[2])}


def vec3_from_wire(data):
    if data is None:
        return Vec3(0, 0, 0)
    if not isinstance(data, dict):
        raise ValueError(f"Expected an {{x, y, z}} object, got {data!r}")
    coords = [data.get(axis, 0.0) for axis in 'xyz']
    if not all(_is_number(c) for c in coords):
        raise ValueError(f"Non-numeric vector: {data!r}")
    return Vec3(*coords)


class PlayerSnapshot:
    """Advisory state one client publishes about its own player."""

    def __init__(self, username, position, rotation, mode=FLYING, health=MAX_HEALTH, last_update=None):
        self.username = username
        self.position = position
        self.rotation = rotation
        self.mode = mode
        self.health = health
        self.last_update = last_update

    def to_wire(self):
        data = {
            'username': self.username,
            'position': vec3_to_wire(self.position),
            'rotation': vec3_to_wire(self.rotation),
            'health': self.health,
            'mode': self.mode,
        }
        if self.last_update is not None:
            data['lastUpdate'] = self.last_update
        return data

    @classmethod
    def from_wire(cls, data):
        """Parse a peer's entry. Bad scalars fall back to defaults; bad vectors raise ValueError"""
        if not isinstance(data, dict):
            raise ValueError(f"Expected a player object, got {data!r}")

        username = data.get('username')
        if not isinstance(username, str):
            username = ''

        mode = data.get('mode', FLYING)
        if mode not in MOVEMENT_MODES:
            mode = FLYING

        health = data.get('health', MAX_HEALTH)
        try:
            health = int(health) if _is_number(health) else MAX_HEALTH
        except (ValueError, OverflowError):
            health = MAX_HEALTH

        last_update = data.get('lastUpdate')
        return cls(
            username=username,
            position=vec3_from_wire(data.get('position')),
            rotation=vec3_from_wire(data.get('rotation')),
            mode=mode,
            health=health,
            last_update=last_update if _is_number(last_update) else None,
        )


class Projectile:
    def __init__(self, position, velocity, remaining_lifetime):
        self.position = position
        self.velocity = velocity
        self.remaining_lifetime = remaining_lifetime

    def update(self):
        """Advance one frame; returns False once the projectile has expired"""
        self.remaining_lifetime -= 1
        self.position = self.position + self.velocity
        return self.remaining_lifetime > 0


class PilotState:
    """Kinematic state of the local player across all three movement modes."""

    def __init__(self, spawn_position):
        self.mode = FLYING
        self.health = MAX_HEALTH

        self.plane_position = vec3_copy(spawn_position)
        self.orientation = Quat(1, 0, 0, 0)
        self.pitch_rate = 0.0
        self.yaw_rate = 0.0
        self.roll_rate = 0.0

        self.character_position = vec3_copy(spawn_position)
        self.character_rotation = Vec3(0, 0, 0)
        self.parachute_velocity = Vec3(0, 0, 0)
        self.canopy_sway = Vec3(0, 0, 0)


class RemotePlayer:
    """Local mirror of another player, rebuilt from pulled snapshots."""

    def __init__(self, player_id, snapshot):
        self.player_id = player_id
        self.username = snapshot.username
        self.mode = snapshot.mode
        self.health = snapshot.health

        # Seeded at the first received position, not the origin
        self.plane_position = vec3_copy(snapshot.position)
        self.plane_rotation = vec3_copy(snapshot.rotation)
        self.character_position = vec3_copy(snapshot.position)
        self.parachute_position = vec3_copy(snapshot.position)

        self.plane_visible = True
        self.character_visible = False
        self.parachute_visible = False
