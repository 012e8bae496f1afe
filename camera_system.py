from ursina import Vec3

from entities import FLYING, GROUND, PARACHUTING, vec3_copy, vec3_lerp
from physics import SPAWN_POSITION, rotate

CAMERA_OFFSETS = {
    FLYING: Vec3(0, 5, -15),
    PARACHUTING: Vec3(-10, 5, 0),
    GROUND: Vec3(-8, 3, 0),
}
CAMERA_BLEND = 0.1  # fraction of the remaining distance covered per frame


def camera_offset(mode, orientation=None):
    offset = CAMERA_OFFSETS[mode]
    # Only the aircraft drags the camera around with its attitude
    if mode == FLYING and orientation is not None:
        return rotate(orientation, offset)
    return vec3_copy(offset)


def desired_camera_position(mode, target_position, orientation=None):
    return target_position + camera_offset(mode, orientation)


def follow(camera_position, mode, target_position, orientation=None):
    """Smooth chase: never snaps, always closes CAMERA_BLEND of the gap"""
    return vec3_lerp(camera_position, desired_camera_position(mode, target_position, orientation), CAMERA_BLEND)


class ChaseCamera:
    def __init__(self, position=None):
        if position is None:
            position = SPAWN_POSITION + CAMERA_OFFSETS[FLYING]
        self.position = vec3_copy(position)
        self.look_at = vec3_copy(SPAWN_POSITION)

    def update(self, mode, target_position, orientation=None):
        self.position = follow(self.position, mode, target_position, orientation)
        self.look_at = vec3_copy(target_position)
        return self.position
