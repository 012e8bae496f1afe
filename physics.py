import math

from ursina import Quat, Vec3

from controls import (
    BACK_KEYS, FORWARD_KEYS, LEFT_KEYS, RIGHT_KEYS, ROLL_LEFT_KEYS, ROLL_RIGHT_KEYS, is_held,
)
from entities import FLYING, GROUND, PARACHUTING, vec3_copy

# Movement constants (per tick)
SPAWN_POSITION = Vec3(0, 50, 0)
FLIGHT_SPEED = 0.3
ROTATION_ACCELERATION = 0.002
MAX_ROTATION_RATE = 0.05
ROTATION_DAMPING = 0.95
FLIGHT_FLOOR = -15.0  # Lowest altitude the plane can reach

BAIL_OUT_VELOCITY = Vec3(0, -0.1, 0)
PARACHUTE_STEER = 0.01
PARACHUTE_GRAVITY = 0.005
TERMINAL_DESCENT = -0.3
PARACHUTE_DRAG = 0.98
SWAY_AMPLITUDE = 0.1
SWAY_FREQ_X = 0.003
SWAY_FREQ_Z = 0.002

GROUND_HEIGHT = -18.5
WALK_STEP = 0.2

X_AXIS = Vec3(1, 0, 0)
Y_AXIS = Vec3(0, 1, 0)
Z_AXIS = Vec3(0, 0, 1)
FORWARD_AXIS = X_AXIS


def axis_angle(axis, angle):
    q = Quat()
    q.setFromAxisAngleRad(angle, axis)
    return q


def rotate_local(orientation, axis, angle):
    """Turn about one of the body's own axes"""
    # Panda composes left to right: (a * b) applies a, then b
    return axis_angle(axis, angle) * orientation


def rotate(orientation, v):
    return Vec3(*orientation.xform(v))


def quat_from_euler(rotation):
    """Inverse of quat_to_euler: X, then Y, then Z about the body axes"""
    return axis_angle(Z_AXIS, rotation[2]) * axis_angle(Y_AXIS, rotation[1]) * axis_angle(X_AXIS, rotation[0])


def quat_to_euler(q):
    """Euler angles (XYZ order, radians) for a unit quaternion; this is what goes over the wire"""
    col_x, col_y, col_z = rotate(q, X_AXIS), rotate(q, Y_AXIS), rotate(q, Z_AXIS)
    m13 = col_z.x
    ry = math.asin(max(-1.0, min(1.0, m13)))
    if abs(m13) < 0.9999999:
        rx = math.atan2(-col_z.y, col_z.z)
        rz = math.atan2(-col_y.x, col_x.x)
    else:
        rx = math.atan2(col_y.z, col_y.y)
        rz = 0.0
    return Vec3(rx, ry, rz)


def forward_vector(pilot):
    return rotate(pilot.orientation, FORWARD_AXIS)


def update_rotation_rate(rate, increase, decrease):
    if increase:
        return min(rate + ROTATION_ACCELERATION, MAX_ROTATION_RATE)
    if decrease:
        return max(rate - ROTATION_ACCELERATION, -MAX_ROTATION_RATE)
    return rate * ROTATION_DAMPING


def step_flying(pilot, keys):
    pilot.yaw_rate = update_rotation_rate(pilot.yaw_rate, is_held(keys, FORWARD_KEYS), is_held(keys, BACK_KEYS))
    pilot.pitch_rate = update_rotation_rate(pilot.pitch_rate, is_held(keys, LEFT_KEYS), is_held(keys, RIGHT_KEYS))
    pilot.roll_rate = update_rotation_rate(
        pilot.roll_rate, is_held(keys, ROLL_LEFT_KEYS), is_held(keys, ROLL_RIGHT_KEYS)
    )

    # Local-axis rotations: pitch, then yaw, then roll
    q = pilot.orientation
    q = rotate_local(q, X_AXIS, pilot.pitch_rate)
    q = rotate_local(q, Y_AXIS, pilot.yaw_rate)
    q = rotate_local(q, Z_AXIS, pilot.roll_rate)
    q.normalize()
    pilot.orientation = q

    pilot.plane_position = pilot.plane_position + forward_vector(pilot) * FLIGHT_SPEED

    if pilot.plane_position.y < FLIGHT_FLOOR:
        pilot.plane_position.y = FLIGHT_FLOOR


def bail_out(pilot):
    """Leave the plane. Returns False when not flying"""
    if pilot.mode != FLYING:
        return False
    pilot.mode = PARACHUTING
    pilot.character_position = vec3_copy(pilot.plane_position)
    pilot.parachute_velocity = vec3_copy(BAIL_OUT_VELOCITY)
    return True


def _steer(keys, amount):
    dx = dz = 0.0
    if is_held(keys, FORWARD_KEYS):
        dx += amount
    if is_held(keys, BACK_KEYS):
        dx -= amount
    if is_held(keys, LEFT_KEYS):
        dz += amount
    if is_held(keys, RIGHT_KEYS):
        dz -= amount
    return dx, dz


def step_parachuting(pilot, keys, now_ms):
    velocity = pilot.parachute_velocity
    dx, dz = _steer(keys, PARACHUTE_STEER)
    velocity.x += dx
    velocity.z += dz

    velocity.y = max(velocity.y - PARACHUTE_GRAVITY, TERMINAL_DESCENT)

    velocity.x *= PARACHUTE_DRAG
    velocity.z *= PARACHUTE_DRAG

    pilot.character_position = pilot.character_position + velocity

    # Cosmetic, driven by wall-clock time
    pilot.canopy_sway = Vec3(
        math.cos(now_ms * SWAY_FREQ_X) * SWAY_AMPLITUDE,
        0,
        math.sin(now_ms * SWAY_FREQ_Z) * SWAY_AMPLITUDE,
    )

    if pilot.character_position.y <= GROUND_HEIGHT:
        pilot.character_position.y = GROUND_HEIGHT
        pilot.mode = GROUND


def step_ground(pilot, keys):
    dx, dz = _steer(keys, WALK_STEP)
    pilot.character_position = pilot.character_position + Vec3(dx, 0, dz)
    pilot.character_position.y = GROUND_HEIGHT


def step(pilot, keys, now_ms):
    if pilot.mode == FLYING:
        step_flying(pilot, keys)
    elif pilot.mode == PARACHUTING:
        step_parachuting(pilot, keys, now_ms)
    elif pilot.mode == GROUND:
        step_ground(pilot, keys)
    else:
        raise ValueError(f"Unknown movement mode: {pilot.mode}")


def current_pose(pilot):
    """Position and Euler rotation of whatever the player currently controls"""
    if pilot.mode == FLYING:
        return vec3_copy(pilot.plane_position), quat_to_euler(pilot.orientation)
    return vec3_copy(pilot.character_position), vec3_copy(pilot.character_rotation)
