import argparse
import logging
import sys

from ursina import *

import settings
from bootstrap import create_app
from controls import HELP_KEY, LEAVE_KEY, handle_input, held_key_set
from errors import RoomApiError, TransientNetworkError
from game_loop import Simulation
from hud_systems import Hud
from menu import prompt_username, run_lobby
from networking import RoomApiClient, Session, Synchronizer
from world_init import WorldView, build_world

logger = logging.getLogger(__name__)

OFFLINE_ROOM = 'SOLO00'


class GameController(Entity):
    """Ursina calls update() once per frame and input() per key press."""

    def __init__(self, session, api=None, **kwargs):
        super().__init__(**kwargs)
        self.session = session
        self.simulation = Simulation(session.username)
        self.sync = Synchronizer(session, api, self.simulation.snapshot) if api else None
        self.view = WorldView()
        self.hud = Hud(session)
        if self.sync:
            self.sync.start()

    def update(self):
        if not self.session.active:
            return
        self.simulation.tick(held_key_set(held_keys))
        mirrors = self.sync.mirrors.items() if self.sync else []
        roster = self.sync.roster if self.sync else {self.session.player_id: self.simulation.snapshot()}
        self.view.project(self.simulation, mirrors)
        self.hud.update(self.simulation, roster)

    def input(self, key):
        if key == LEAVE_KEY:
            self.leave()
            return
        if key == HELP_KEY:
            self.hud.toggle_controls()
            return
        handle_input(key, self.simulation)

    def leave(self):
        if not self.session.active:
            return
        logger.info("Leaving room %s", self.session.room_code)
        if self.sync:
            self.sync.leave()
        else:
            self.session.close()
        self.view.destroy()
        self.hud.destroy()
        application.quit()


def server_reachable(api):
    try:
        api.health()
    except (TransientNetworkError, RoomApiError) as exc:
        logger.warning("Could not reach room store (%s), running offline", exc)
        return False
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(description="jarzd.io client")
    parser.add_argument("--server", default=settings.SERVER_URL)
    parser.add_argument("--username")
    parser.add_argument("--offline", action="store_true")
    parser.add_argument("--fullscreen", action="store_true")
    args = parser.parse_args(argv)

    settings.configure_logging()
    api = RoomApiClient(base_url=args.server)

    if not args.offline and server_reachable(api):
        session = run_lobby(api, username=args.username)
        if session is None:
            return 0
    else:
        session = Session(args.username or prompt_username(), OFFLINE_ROOM, is_host=True)
        api.close()
        api = None

    app = create_app(fullscreen=args.fullscreen)
    build_world()
    GameController(session, api)
    app.run()

    if api:
        api.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
