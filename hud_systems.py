from ursina import *

from entities import FLYING, GROUND, PARACHUTING
from settings import GAME_NAME

MODE_LABELS = {
    FLYING: 'Flying',
    PARACHUTING: 'Parachuting',
    GROUND: 'On foot',
}

CONTROLS_TEXT = {
    FLYING: 'W/S yaw  A/D pitch  Q/E roll\nSPACE shoot  F bail out',
    PARACHUTING: 'WASD steer the canopy',
    GROUND: 'WASD walk',
}


def roster_lines(roster, local_player_id):
    lines = []
    for pid, snapshot in sorted(roster.items(), key=lambda item: item[1].username.lower()):
        marker = ' (you)' if pid == local_player_id else ''
        lines.append(f"{snapshot.username}{marker} - {MODE_LABELS.get(snapshot.mode, snapshot.mode)}")
    return lines


class Hud:
    def __init__(self, session):
        self.session = session
        host_tag = ' (host)' if session.is_host else ''
        self.title = Text(f"{GAME_NAME}\nRoom: {session.room_code}{host_tag}", position=(-0.85, 0.47), scale=1.4,
                          color=color.white)
        self.mode_display = Text('', position=(-0.85, 0.37), scale=1.2, color=color.lime)
        self.players_display = Text('', position=(0.5, 0.47), scale=1.1, color=color.white)
        self.controls_display = Text('', position=(-0.85, -0.38), scale=1.1, color=color.white)
        self.show_controls = True

    def toggle_controls(self):
        self.show_controls = not self.show_controls
        self.controls_display.visible = self.show_controls

    def update(self, simulation, roster):
        mode = simulation.pilot.mode
        pos = simulation.snapshot().position
        self.mode_display.text = f"Mode: {MODE_LABELS[mode]}\nAltitude: {pos.y:.1f}"
        if mode == FLYING:
            self.mode_display.text += f"\nRounds in air: {len(simulation.projectiles)}"

        lines = roster_lines(roster, self.session.player_id)
        self.players_display.text = f"Players ({len(lines)})\n" + "\n".join(lines)

        if self.show_controls:
            self.controls_display.text = CONTROLS_TEXT[mode] + '\nH hide help  ESC leave'

    def destroy(self):
        for text in (self.title, self.mode_display, self.players_display, self.controls_display):
            destroy(text)
