import logging
import threading

import pytest
import requests
from ursina import Vec3

from entities import FLYING, GROUND, PARACHUTING, PlayerSnapshot
from errors import RoomApiError, TransientNetworkError
from game_loop import Simulation
from networking import RemoteMirrors, RoomApiClient, Session, Synchronizer


def snap(username='bob', pos=(0, 0, 0), rot=(0, 0, 0), mode=FLYING):
    return PlayerSnapshot(username, Vec3(*pos), Vec3(*rot), mode=mode)


class FakeApi:
    def __init__(self):
        self.pushed = []
        self.left = []
        self.roster = {}
        self.fail = None
        self.pushed_event = threading.Event()
        self.pulled_event = threading.Event()

    def update_player(self, room_code, player_id, snapshot):
        if self.fail:
            raise self.fail
        self.pushed.append((room_code, player_id, snapshot))
        self.pushed_event.set()

    def get_players(self, room_code):
        if self.fail:
            raise self.fail
        self.pulled_event.set()
        return dict(self.roster)

    def leave_room(self, room_code, player_id):
        if self.fail:
            raise self.fail
        self.left.append((room_code, player_id))


class FlakyApi(FakeApi):
    """First pull blows up with something the client does not expect."""

    def __init__(self):
        super().__init__()
        self.pull_calls = 0

    def get_players(self, room_code):
        self.pull_calls += 1
        if self.pull_calls == 1:
            raise TypeError('int() argument must be a string or a number')
        return super().get_players(room_code)


@pytest.fixture
def session():
    return Session('alice', 'abcdef', is_host=True, player_id='me')


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def sync(session, api):
    sim = Simulation('alice', clock=lambda: 0)
    return Synchronizer(session, api, sim.snapshot, push_interval=0.01, pull_interval=0.01)


class TestSession:
    def test_upper_cases_room_code(self, session):
        assert session.room_code == 'ABCDEF'

    def test_generates_stable_id(self):
        s = Session('alice', 'ABCDEF')
        assert len(s.player_id) == 32
        assert Session('alice', 'ABCDEF').player_id != s.player_id


class TestPlayerSnapshotWire:
    def test_bad_scalars_fall_back_to_defaults(self):
        parsed = PlayerSnapshot.from_wire({'username': None, 'health': None, 'mode': 'swimming', 'lastUpdate': 'x'})
        assert parsed.username == ''
        assert parsed.health == 100
        assert parsed.mode == FLYING
        assert parsed.last_update is None
        assert tuple(parsed.position) == (0, 0, 0)

    @pytest.mark.parametrize('entry', [
        'x',
        [1, 2],
        {'position': 'up'},
        {'position': {'x': 'a', 'y': 0, 'z': 0}},
        {'rotation': {'x': None}},
    ])
    def test_unreadable_entries_raise_value_error(self, entry):
        with pytest.raises(ValueError):
            PlayerSnapshot.from_wire(entry)


class TestRemoteMirrors:
    def test_skips_local_player(self):
        mirrors = RemoteMirrors('me')
        mirrors.reconcile({'me': snap('alice'), 'p2': snap()})
        assert [pid for pid, _ in mirrors.items()] == ['p2']

    def test_new_mirror_starts_at_received_position(self):
        mirrors = RemoteMirrors('me')
        mirrors.reconcile({'p2': snap(pos=(10, 20, 30))})
        mirror = mirrors.players['p2']
        assert mirror.plane_position == Vec3(10, 20, 30)

    def test_interpolates_rather_than_snaps(self):
        mirrors = RemoteMirrors('me')
        mirrors.reconcile({'p2': snap(pos=(0, 0, 0))})
        mirrors.reconcile({'p2': snap(pos=(10, 0, 0), rot=(0.1, 0.2, 0.3))})
        mirror = mirrors.players['p2']
        assert mirror.plane_position.x == pytest.approx(3.0)
        # Rotation is taken as-is
        assert mirror.plane_rotation == Vec3(0.1, 0.2, 0.3)

    def test_visibility_follows_mode(self):
        mirrors = RemoteMirrors('me')
        mirrors.reconcile({'p2': snap(mode=PARACHUTING)})
        m = mirrors.players['p2']
        assert (m.plane_visible, m.character_visible, m.parachute_visible) == (False, True, True)

        mirrors.reconcile({'p2': snap(mode=GROUND, pos=(0, -18.5, 0))})
        assert (m.plane_visible, m.character_visible, m.parachute_visible) == (False, True, False)
        assert m.character_position.y == pytest.approx(-18.5 * 0.3)

        mirrors.reconcile({'p2': snap(mode=FLYING)})
        assert (m.plane_visible, m.character_visible, m.parachute_visible) == (True, False, False)

    def test_absent_players_removed(self):
        mirrors = RemoteMirrors('me')
        mirrors.reconcile({'p2': snap(), 'p3': snap('carol')})
        gone = mirrors.reconcile({'p3': snap('carol')})
        assert gone == ['p2']
        assert [pid for pid, _ in mirrors.items()] == ['p3']


class TestSynchronizer:
    def test_push_sends_local_snapshot(self, sync, api):
        assert sync.push_once() is True
        room, pid, snapshot = api.pushed[0]
        assert (room, pid) == ('ABCDEF', 'me')
        assert snapshot.username == 'alice'
        assert snapshot.mode == FLYING

    def test_push_failure_is_logged_and_dropped(self, sync, api, caplog):
        api.fail = TransientNetworkError('connection refused')
        with caplog.at_level(logging.WARNING, logger='networking'):
            assert sync.push_once() is False
        assert 'Error updating player' in caplog.text
        assert api.pushed == []

    def test_pull_reconciles_and_keeps_roster(self, sync, api):
        api.roster = {'me': snap('alice'), 'p2': snap('bob', pos=(5, 5, 5))}
        assert sync.pull_once() is True
        assert set(sync.roster) == {'me', 'p2'}
        assert [pid for pid, _ in sync.mirrors.items()] == ['p2']

    def test_pull_failure_keeps_previous_mirrors(self, sync, api):
        api.roster = {'p2': snap()}
        sync.pull_once()
        api.fail = RoomApiError(404, 'Room not found')
        assert sync.pull_once() is False
        assert [pid for pid, _ in sync.mirrors.items()] == ['p2']

    def test_loops_run_until_stopped(self, sync, api):
        sync.start()
        try:
            assert api.pushed_event.wait(2)
            assert api.pulled_event.wait(2)
            assert sync.running
        finally:
            sync.stop()
        assert not sync.running

    def test_loop_survives_unexpected_errors(self, session, caplog):
        api = FlakyApi()
        sync = Synchronizer(session, api, Simulation('alice', clock=lambda: 0).snapshot,
                            push_interval=0.01, pull_interval=0.01)
        with caplog.at_level(logging.ERROR, logger='networking'):
            sync.start()
            try:
                assert api.pulled_event.wait(2)
                assert sync.running
            finally:
                sync.stop()
        assert 'Unexpected error in jarzd-pull loop' in caplog.text

    def test_leave_cancels_and_clears(self, sync, api, session):
        api.roster = {'p2': snap()}
        sync.start()
        api.pulled_event.wait(2)
        sync.leave()
        assert not sync.running
        assert api.left == [('ABCDEF', 'me')]
        assert sync.mirrors.items() == []
        assert session.active is False
        # A closed session never pushes again
        assert sync.push_once() is False

    def test_leave_survives_network_failure(self, sync, api, session):
        api.fail = TransientNetworkError('offline')
        sync.leave()
        assert session.active is False


class FakeResponse:
    def __init__(self, status_code, body=None, reason='OK'):
        self.status_code = status_code
        self.reason = reason
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError('no body')
        return self._body


class FakeHttp:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response


class TestRoomApiClient:
    def test_sets_bearer_token(self):
        http = FakeHttp(FakeResponse(200, {'status': 'ok'}))
        client = RoomApiClient('http://store/', token='tok', prefix='', http=http)
        client.health()
        assert http.headers['Authorization'] == 'Bearer tok'
        assert http.calls[0][1] == 'http://store/health'

    def test_error_status_raises_with_message(self):
        http = FakeHttp(FakeResponse(404, {'error': 'Room not found'}, reason='NOT FOUND'))
        client = RoomApiClient('http://store', http=http, prefix='')
        with pytest.raises(RoomApiError) as info:
            client.join_room('ABCDEF', 'bob')
        assert info.value.status == 404
        assert info.value.message == 'Room not found'

    def test_non_json_error_uses_reason(self):
        http = FakeHttp(FakeResponse(502, None, reason='Bad Gateway'))
        client = RoomApiClient('http://store', http=http, prefix='')
        with pytest.raises(RoomApiError) as info:
            client.health()
        assert info.value.message == 'Bad Gateway'

    def test_transport_failure_is_transient(self):
        http = FakeHttp(error=requests.ConnectionError('refused'))
        client = RoomApiClient('http://store', http=http, prefix='')
        with pytest.raises(TransientNetworkError):
            client.get_players('ABCDEF')

    def test_get_players_parses_snapshots(self):
        body = {'players': {'p1': {
            'username': 'bob', 'position': {'x': 1, 'y': 2, 'z': 3},
            'rotation': {'x': 0, 'y': 0, 'z': 0}, 'health': 100, 'mode': 'ground', 'lastUpdate': 5,
        }}}
        http = FakeHttp(FakeResponse(200, body))
        client = RoomApiClient('http://store', http=http, prefix='')
        players = client.get_players('ABCDEF')
        assert players['p1'].mode == GROUND
        assert players['p1'].position == Vec3(1, 2, 3)
        assert players['p1'].last_update == 5
        assert http.calls[0][2]['params'] == {'roomCode': 'ABCDEF'}


def test_two_clients_see_each_other_through_the_server(flask_http, clock):
    api = RoomApiClient('http://store', prefix='', http=flask_http)
    api.create_room('ABCDEF', 'alice')
    api.join_room('ABCDEF', 'bob')

    alice_sim, bob_sim = Simulation('alice', clock=lambda: 0), Simulation('bob', clock=lambda: 0)
    alice = Synchronizer(Session('alice', 'ABCDEF', is_host=True), api, alice_sim.snapshot)
    bob = Synchronizer(Session('bob', 'ABCDEF'), api, bob_sim.snapshot)

    bob_sim.bail_out()
    alice.push_once()
    bob.push_once()
    alice.pull_once()

    mirrors = dict(alice.mirrors.items())
    assert list(mirrors) == [bob.session.player_id]
    assert mirrors[bob.session.player_id].mode == PARACHUTING
    assert mirrors[bob.session.player_id].username == 'bob'

    bob.leave()
    alice.pull_once()
    assert alice.mirrors.items() == []

    alice.push_once()
    clock.advance(6000)
    alice.pull_once()
    assert alice.roster == {}


def test_malformed_peer_entry_does_not_stop_pulls(flask_http, caplog):
    api = RoomApiClient('http://store', prefix='', http=flask_http)
    api.create_room('ABCDEF', 'alice')
    flask_http.client.post('/update-player', json={
        'roomCode': 'ABCDEF', 'playerId': 'odd', 'playerData': {'username': None, 'health': None},
    })
    flask_http.client.post('/update-player', json={
        'roomCode': 'ABCDEF', 'playerId': 'broken', 'playerData': {'position': {'x': 'far'}},
    })

    sync = Synchronizer(Session('alice', 'ABCDEF'), api, Simulation('alice', clock=lambda: 0).snapshot)
    with caplog.at_level(logging.WARNING, logger='networking'):
        assert sync.pull_once() is True
    assert 'Skipping unreadable entry for player broken' in caplog.text

    mirrors = dict(sync.mirrors.items())
    assert set(mirrors) == {'odd'}
    assert mirrors['odd'].username == ''
    assert mirrors['odd'].health == 100
