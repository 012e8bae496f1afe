import logging
import random
import string

from errors import RoomApiError, TransientNetworkError
from networking import Session
from room_store import normalize_code
from settings import GAME_NAME, ROOM_CODE_LENGTH

logger = logging.getLogger(__name__)

BASE36 = string.digits + string.ascii_lowercase

CREATE_FAILED = "Failed to create room. Please try again."
JOIN_FAILED = "Failed to join room. Please check the code and try again."


def generate_room_code(length=ROOM_CODE_LENGTH, rng=random):
    # Collisions are not checked; creating over an existing code replaces it
    return ''.join(rng.choice(BASE36) for _ in range(length)).upper()


def create_room(api, username, code=None):
    """Ask the store for a new room. Returns (session, error message)"""
    code = code or generate_room_code()
    try:
        api.create_room(code, username)
    except (TransientNetworkError, RoomApiError) as exc:
        logger.error("Error creating room: %s", exc)
        return None, CREATE_FAILED
    return Session(username, code, is_host=True), None


def join_room(api, username, code):
    code = normalize_code(code)
    if not code:
        return None, "Enter a room code."
    try:
        api.join_room(code, username)
    except RoomApiError as exc:
        logger.error("Error joining room: %s", exc)
        return None, exc.message or JOIN_FAILED
    except TransientNetworkError as exc:
        logger.error("Error joining room: %s", exc)
        return None, JOIN_FAILED
    return Session(username, code, is_host=False), None


def prompt_username(ask=input, say=print):
    while True:
        name = ask("Choose your pilot name: ").strip()
        if name:
            return name
        say("A pilot needs a name.")


def run_lobby(api, username=None, ask=input, say=print):
    """Terminal lobby: loop until a room is created or joined"""
    say(f"\n=== {GAME_NAME} ===\nMultiplayer Flying & Shooting Game\n")
    username = username or prompt_username(ask, say)

    while True:
        choice = ask(f"[{username}] (c)reate room, (j)oin room, (q)uit: ").strip().lower()
        if choice in ('q', 'quit'):
            return None

        if choice in ('c', 'create'):
            session, error = create_room(api, username)
        elif choice in ('j', 'join'):
            session, error = join_room(api, username, ask("Room code: "))
        else:
            continue

        if error:
            say(error)
            continue
        say(f"Entering room {session.room_code}")
        return session
