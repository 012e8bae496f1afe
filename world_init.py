from ursina import *
from ursina import Quat
import random

from entities import FLYING, PARACHUTING
from physics import GROUND_HEIGHT, quat_from_euler

LOCAL_TINT = color.rgb32(220, 60, 60)
REMOTE_TINT = color.rgb32(51, 51, 255)
GROUND_Y = GROUND_HEIGHT - 1.5


def to_vec3(v):
    return Vec3(v[0], v[1], v[2])


def scene_quat(q):
    """Map a simulation attitude onto a scene node.

    Nodes live in panda's Z-up frame and ursina swaps y and z on the way in,
    which mirrors the rotation axis and flips the turning sense.
    """
    return Quat(q.getR(), -q.getI(), -q.getK(), -q.getJ())


def set_attitude(entity, q):
    entity.setQuat(scene_quat(q))


def build_world(cloud_count=40):
    ground = Entity(model='plane', scale=(1000, 1, 1000), y=GROUND_Y, color=color.rgb32(74, 124, 89))
    DirectionalLight(shadows=False).look_at(Vec3(-1, -2, -1))
    AmbientLight(color=color.rgba32(255, 255, 255, 150))

    clouds = []
    for _ in range(cloud_count):
        clouds.append(Entity(
            model='sphere',
            color=color.rgba32(255, 255, 255, 180),
            scale=random.uniform(5, 12),
            position=(random.uniform(-200, 200), random.uniform(20, 60), random.uniform(-200, 200)),
        ))
    return ground, clouds


def create_plane(tint):
    plane = Entity()
    Entity(parent=plane, model='cube', scale=(5, 0.8, 0.8), color=tint)  # fuselage
    Entity(parent=plane, model='cube', scale=(1.2, 0.15, 10), color=tint)  # wings
    Entity(parent=plane, model='cube', scale=(0.8, 0.1, 3), x=-2.2, y=0.1, color=tint)  # tailplane
    Entity(parent=plane, model='cube', scale=(0.8, 1.2, 0.1), x=-2.2, y=0.7, color=tint)  # fin
    plane.propeller = Entity(parent=plane, model='cube', scale=(0.1, 2.5, 0.2), x=2.6, color=color.dark_gray)
    return plane


def create_character(tint):
    character = Entity()
    Entity(parent=character, model='cube', scale=(0.6, 1, 0.4), color=tint)  # body
    Entity(parent=character, model='sphere', scale=0.45, y=0.8, color=color.rgb32(255, 220, 177))  # head
    Entity(parent=character, model='cube', scale=(0.25, 0.8, 0.25), y=-0.9, z=0.15, color=color.dark_gray)
    Entity(parent=character, model='cube', scale=(0.25, 0.8, 0.25), y=-0.9, z=-0.15, color=color.dark_gray)
    return character


def create_parachute():
    parachute = Entity()
    Entity(parent=parachute, model='sphere', scale=(5, 1.5, 5), y=3, color=color.orange)
    return parachute


class Avatar:
    """The three interchangeable bodies a player can show: plane, pilot, canopy."""

    def __init__(self, tint):
        self.plane = create_plane(tint)
        self.character = create_character(tint)
        self.parachute = create_parachute()
        self.character.visible = False
        self.parachute.visible = False

    def spin_propeller(self):
        self.plane.propeller.rotation_x += 30

    def destroy(self):
        destroy(self.plane)
        destroy(self.character)
        destroy(self.parachute)


class WorldView:
    """Projects simulation and mirror state onto ursina entities after every frame."""

    def __init__(self):
        self.local = Avatar(LOCAL_TINT)
        self.remote = {}
        self.bullets = []

    def project(self, simulation, mirrors):
        self.project_local(simulation)
        self.project_remote(mirrors)
        self.project_projectiles(simulation.projectiles)

        camera.position = to_vec3(simulation.camera.position)
        camera.look_at(to_vec3(simulation.camera.look_at))

    def project_local(self, simulation):
        pilot = simulation.pilot
        avatar = self.local
        flying = pilot.mode == FLYING

        avatar.plane.visible = flying
        avatar.character.visible = not flying
        avatar.parachute.visible = pilot.mode == PARACHUTING

        if flying:
            avatar.plane.position = to_vec3(pilot.plane_position)
            set_attitude(avatar.plane, pilot.orientation)
            avatar.spin_propeller()
        else:
            avatar.character.position = to_vec3(pilot.character_position)
            avatar.parachute.position = to_vec3(pilot.character_position)
            set_attitude(avatar.parachute, quat_from_euler(pilot.canopy_sway))

    def project_remote(self, mirrors):
        present = set()
        for pid, mirror in mirrors:
            present.add(pid)
            avatar = self.remote.get(pid)
            if avatar is None:
                avatar = self.remote[pid] = Avatar(REMOTE_TINT)

            avatar.plane.visible = mirror.plane_visible
            avatar.character.visible = mirror.character_visible
            avatar.parachute.visible = mirror.parachute_visible
            avatar.plane.position = to_vec3(mirror.plane_position)
            set_attitude(avatar.plane, quat_from_euler(mirror.plane_rotation))
            avatar.character.position = to_vec3(mirror.character_position)
            avatar.parachute.position = to_vec3(mirror.parachute_position)
            if mirror.plane_visible:
                avatar.spin_propeller()

        # Mirrors dropped by the last pull take their entities with them
        for pid in [p for p in self.remote if p not in present]:
            self.remote.pop(pid).destroy()

    def project_projectiles(self, projectiles):
        while len(self.bullets) < len(projectiles):
            self.bullets.append(Entity(model='sphere', scale=0.4, color=color.yellow))
        while len(self.bullets) > len(projectiles):
            destroy(self.bullets.pop())

        for bullet, projectile in zip(self.bullets, projectiles):
            bullet.position = to_vec3(projectile.position)

    def destroy(self):
        self.local.destroy()
        for avatar in self.remote.values():
            avatar.destroy()
        self.remote.clear()
        for bullet in self.bullets:
            destroy(bullet)
        self.bullets.clear()
