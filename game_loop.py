import time

import physics
from camera_system import ChaseCamera
from entities import FLYING, PilotState, PlayerSnapshot, Projectile, vec3_copy

PROJECTILE_SPEED = 2.0
PROJECTILE_LIFETIME = 100  # frames


def wall_clock_ms():
    return time.time() * 1000


class Simulation:
    """Everything the local player owns, advanced exactly once per rendered frame.

    The frame callback hands in the held key set; the clock is injectable so
    the parachute sway is reproducible in tests. Works with or without a
    network connection.
    """

    def __init__(self, username, clock=wall_clock_ms):
        self.username = username
        self.clock = clock
        self.pilot = PilotState(physics.SPAWN_POSITION)
        self.projectiles = []
        self.camera = ChaseCamera()
        self.frame = 0
        self._ticking = False

    @property
    def mode(self):
        return self.pilot.mode

    def tick(self, keys):
        if self._ticking:
            raise RuntimeError("Simulation.tick is not re-entrant")
        self._ticking = True
        try:
            physics.step(self.pilot, keys, self.clock())
            self.update_projectiles()
            self.update_camera()
            self.frame += 1
        finally:
            self._ticking = False

    def update_projectiles(self):
        self.projectiles = [p for p in self.projectiles if p.update()]

    def update_camera(self):
        if self.pilot.mode == FLYING:
            return self.camera.update(FLYING, self.pilot.plane_position, self.pilot.orientation)
        return self.camera.update(self.pilot.mode, self.pilot.character_position)

    def bail_out(self):
        return physics.bail_out(self.pilot)

    def fire(self):
        """Spawn a projectile along the nose. No-op outside the cockpit"""
        if self.pilot.mode != FLYING:
            return None
        projectile = Projectile(
            position=vec3_copy(self.pilot.plane_position),
            velocity=physics.forward_vector(self.pilot) * PROJECTILE_SPEED,
            remaining_lifetime=PROJECTILE_LIFETIME,
        )
        self.projectiles.append(projectile)
        return projectile

    def snapshot(self):
        position, rotation = physics.current_pose(self.pilot)
        return PlayerSnapshot(
            username=self.username,
            position=position,
            rotation=rotation,
            mode=self.pilot.mode,
            health=self.pilot.health,
        )
