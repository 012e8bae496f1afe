import logging
import threading
import uuid

import requests

import settings
from entities import FLYING, GROUND, PARACHUTING, PlayerSnapshot, RemotePlayer, vec3_copy, vec3_lerp
from errors import RoomApiError, TransientNetworkError
from room_store import normalize_code

logger = logging.getLogger(__name__)

MIRROR_BLEND = 0.3  # fraction of the gap to a received position closed per pull


class RoomApiClient:
    """Thin requests wrapper around the room store's HTTP API."""

    def __init__(self, base_url=settings.SERVER_URL, token=settings.API_TOKEN,
                 prefix=settings.API_PREFIX, timeout=settings.REQUEST_TIMEOUT, http=None):
        self.base_url = base_url.rstrip("/") + prefix
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    def _request(self, method, path, **kwargs):
        try:
            resp = self.http.request(method, f"{self.base_url}/{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TransientNetworkError(str(exc)) from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.status_code >= 400:
            raise RoomApiError(resp.status_code, data.get("error") or resp.reason or "Request failed")
        return data

    def create_room(self, room_code, host_username):
        return self._request("POST", "create-room", json={"roomCode": room_code, "hostUsername": host_username})

    def join_room(self, room_code, username):
        return self._request("POST", "join-room", json={"roomCode": room_code, "username": username})

    def update_player(self, room_code, player_id, snapshot):
        return self._request("POST", "update-player", json={
            "roomCode": room_code,
            "playerId": player_id,
            "playerData": snapshot.to_wire(),
        })

    def get_players(self, room_code):
        data = self._request("GET", "get-players", params={"roomCode": room_code})
        entries = data.get("players") or {}
        if not isinstance(entries, dict):
            raise RoomApiError(200, "Malformed players payload")

        players = {}
        for player_id, entry in entries.items():
            try:
                players[player_id] = PlayerSnapshot.from_wire(entry)
            except ValueError as exc:
                logger.warning("Skipping unreadable entry for player %s: %s", player_id, exc)
        return players

    def leave_room(self, room_code, player_id):
        return self._request("POST", "leave-room", json={"roomCode": room_code, "playerId": player_id})

    def health(self):
        return self._request("GET", "health")

    def close(self):
        self.http.close()


class Session:
    """One visit to one room: who we are, where we are, and whether that is still true."""

    def __init__(self, username, room_code, is_host=False, player_id=None):
        self.username = username
        self.room_code = normalize_code(room_code)
        self.is_host = is_host
        self.player_id = player_id or uuid.uuid4().hex
        self.active = True

    def close(self):
        self.active = False

    def __repr__(self):
        return f"Session({self.username!r}, room={self.room_code}, id={self.player_id})"


class RemoteMirrors:
    """Local copies of every other player in the room, keyed by PlayerId."""

    def __init__(self, local_player_id):
        self.local_player_id = local_player_id
        self.players = {}
        self.lock = threading.Lock()

    def reconcile(self, snapshots):
        """Fold one pulled roster into the mirrors. Returns the ids that were dropped"""
        with self.lock:
            gone = [pid for pid in self.players if pid not in snapshots]
            for pid in gone:
                del self.players[pid]

            for pid, snapshot in snapshots.items():
                if pid == self.local_player_id:
                    continue
                mirror = self.players.get(pid)
                if mirror is None:
                    mirror = self.players[pid] = RemotePlayer(pid, snapshot)
                self._apply(mirror, snapshot)
        return gone

    @staticmethod
    def _apply(mirror, snapshot):
        target = snapshot.position
        mirror.username = snapshot.username
        mirror.mode = snapshot.mode
        mirror.health = snapshot.health

        if snapshot.mode == FLYING:
            mirror.plane_visible, mirror.character_visible, mirror.parachute_visible = True, False, False
            mirror.plane_position = vec3_lerp(mirror.plane_position, target, MIRROR_BLEND)
            mirror.plane_rotation = vec3_copy(snapshot.rotation)
        elif snapshot.mode == PARACHUTING:
            mirror.plane_visible, mirror.character_visible, mirror.parachute_visible = False, True, True
            mirror.character_position = vec3_lerp(mirror.character_position, target, MIRROR_BLEND)
            mirror.parachute_position = vec3_lerp(mirror.parachute_position, target, MIRROR_BLEND)
        elif snapshot.mode == GROUND:
            mirror.plane_visible, mirror.character_visible, mirror.parachute_visible = False, True, False
            mirror.character_position = vec3_lerp(mirror.character_position, target, MIRROR_BLEND)

    def items(self):
        """Thread-safe listing for the frame callback"""
        with self.lock:
            return list(self.players.items())

    def clear(self):
        with self.lock:
            self.players.clear()


class Synchronizer:
    """Push the local snapshot and pull the room roster on two independent timers.

    Neither loop waits on the other. Failures are logged and the cycle is
    simply skipped; the next push or pull supersedes it anyway.
    """

    def __init__(self, session, api, snapshot_source,
                 push_interval=settings.PUSH_INTERVAL, pull_interval=settings.PULL_INTERVAL):
        self.session = session
        self.api = api
        self.snapshot_source = snapshot_source
        self.push_interval = push_interval
        self.pull_interval = pull_interval
        self.mirrors = RemoteMirrors(session.player_id)
        self.roster = {}
        self._stop = threading.Event()
        self._threads = []

    @property
    def running(self):
        return any(t.is_alive() for t in self._threads)

    def start(self):
        if self._threads:
            return
        self._stop.clear()
        self._threads = [
            threading.Thread(target=self._loop, args=(self.push_interval, self.push_once),
                             name="jarzd-push", daemon=True),
            threading.Thread(target=self._loop, args=(self.pull_interval, self.pull_once),
                             name="jarzd-pull", daemon=True),
        ]
        for t in self._threads:
            t.start()

    def _loop(self, interval, action):
        while not self._stop.wait(interval):
            try:
                action()
            except Exception:
                logger.exception("Unexpected error in %s loop", threading.current_thread().name)

    def push_once(self):
        if not self.session.active:
            return False
        snapshot = self.snapshot_source()
        try:
            self.api.update_player(self.session.room_code, self.session.player_id, snapshot)
        except (TransientNetworkError, RoomApiError) as exc:
            logger.warning("Error updating player: %s", exc)
            return False
        return True

    def pull_once(self):
        if not self.session.active:
            return False
        try:
            snapshots = self.api.get_players(self.session.room_code)
        except (TransientNetworkError, RoomApiError) as exc:
            logger.warning("Error fetching players: %s", exc)
            return False
        self.roster = snapshots
        gone = self.mirrors.reconcile(snapshots)
        for pid in gone:
            logger.info("Player %s left room %s", pid, self.session.room_code)
        return True

    def stop(self):
        self._stop.set()
        for t in self._threads:
            if t is not threading.current_thread():
                t.join(timeout=1.0)
        self._threads = []

    def leave(self):
        """Stop both timers, tell the store we are gone, and drop every mirror"""
        self.stop()
        try:
            self.api.leave_room(self.session.room_code, self.session.player_id)
        except (TransientNetworkError, RoomApiError) as exc:
            logger.warning("Error leaving room: %s", exc)
        self.mirrors.clear()
        self.roster = {}
        self.session.close()
