from ursina import *

from settings import GAME_NAME


def create_app(fullscreen=False):
    app = Ursina(development_mode=False)
    window.title = f"{GAME_NAME} - Multiplayer Flying & Shooting"
    window.fullscreen = fullscreen
    window.borderless = False
    window.vsync = True
    window.color = color.rgb32(135, 206, 235)  # Sky
    window.exit_button.visible = False
    mouse.locked = False
    return app
