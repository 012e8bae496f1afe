import logging
import time

from errors import NotFoundError, ValidationError
from settings import STALE_AFTER_MS

logger = logging.getLogger(__name__)

ROOM_KEY_PREFIX = 'room:'


def now_ms():
    return int(time.time() * 1000)


def normalize_code(code):
    if not isinstance(code, str):
        return ''
    return code.strip().upper()


def _text(value):
    return value.strip() if isinstance(value, str) else ''


def room_key(code):
    return f"{ROOM_KEY_PREFIX}{normalize_code(code)}"


class RoomStore:
    """Room bookkeeping on top of a key-value store.

    Every operation reads one room record, changes it and writes it back.
    There is no compare-and-swap: two requests interleaving on the same room
    can lose one of the updates, which the next push repairs.
    """

    def __init__(self, kv, clock=now_ms, stale_after_ms=STALE_AFTER_MS):
        self.kv = kv
        self.clock = clock
        self.stale_after_ms = stale_after_ms

    def _load(self, code):
        room = self.kv.get(room_key(code))
        if room is None:
            raise NotFoundError('Room not found')
        return room

    def _save(self, room):
        self.kv.set(room_key(room['code']), room)

    def create_room(self, code, host_username):
        if not normalize_code(code) or not _text(host_username):
            raise ValidationError('Missing roomCode or hostUsername')

        # Overwrites whatever lived at this code before
        room = {
            'code': normalize_code(code),
            'host': host_username,
            'players': {},
            'createdAt': self.clock(),
        }
        self._save(room)
        logger.info("Room created: %s by %s", room['code'], host_username)
        return room

    def join_room(self, code, username):
        if not normalize_code(code) or not _text(username):
            raise ValidationError('Missing roomCode or username')
        room = self._load(code)
        # Membership only starts with the player's first update
        logger.info("Player %s joined room %s", username, room['code'])
        return room

    def update_player(self, code, player_id, player_data):
        if not normalize_code(code) or not _text(player_id) or not player_data:
            raise ValidationError('Missing required fields')
        if not isinstance(player_data, dict):
            raise ValidationError('playerData must be an object')
        room = self._load(code)
        entry = dict(player_data)
        entry['lastUpdate'] = self.clock()
        room['players'][player_id] = entry
        self._save(room)
        return entry

    def get_players(self, code):
        if not normalize_code(code):
            raise ValidationError('Missing roomCode')
        room = self._load(code)

        # Reading also prunes: stale members are dropped and the room written back
        now = self.clock()
        stale = [
            player_id for player_id, data in room['players'].items()
            if now - data.get('lastUpdate', 0) > self.stale_after_ms
        ]
        for player_id in stale:
            del room['players'][player_id]
            logger.debug("Evicted stale player %s from room %s", player_id, room['code'])

        self._save(room)
        return room['players']

    def leave_room(self, code, player_id):
        if not normalize_code(code) or not _text(player_id):
            raise ValidationError('Missing roomCode or playerId')
        room = self.kv.get(room_key(code))
        if room and player_id in room['players']:
            del room['players'][player_id]
            self._save(room)
            logger.info("Player %s left room %s", player_id, room['code'])
