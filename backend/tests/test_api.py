import types

from guess4.services.games import clock


def _create(client, as_user, user='alice', **body):
    res = client.post('/api/rooms/create', json=body, headers=as_user(user))
    assert res.status_code == 201
    return res.get_json()['room_code']


def _ready_room(client, as_user):
    code = _create(client, as_user)
    assert client.post('/api/rooms/join', json={'room_code': code}, headers=as_user('bob')).status_code == 200
    assert client.post(f'/api/rooms/{code}/secret', json={'player': 1, 'secret': '1234'}, headers=as_user('alice')).status_code == 200
    assert client.post(f'/api/rooms/{code}/secret', json={'player': 2, 'secret': '5678'}, headers=as_user('bob')).status_code == 200
    return code


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'Guess4' in res.get_json()['message']


def test_create_requires_identity(client):
    res = client.post('/api/rooms/create', json={})
    assert res.status_code == 401
    assert res.get_json()['kind'] == 'not_authenticated'


def test_create_and_state(client, as_user):
    res = client.post('/api/rooms/create', json={'time_limit': 180}, headers=as_user('alice'))
    assert res.status_code == 201
    data = res.get_json()
    code = data['room_code']
    assert len(code) == 6 and code.isdigit()
    assert data['room']['player1_id'] == 'alice'

    state = client.get(f'/api/rooms/{code}/state').get_json()
    assert state['room_code'] == code
    assert state['phase'] == 'waiting'
    assert state['game_started'] is False
    assert state['player1_time_remaining'] == 180
    assert state['player2_time_remaining'] == 180
    assert state['move_bonus'] == 5


def test_create_rejects_bad_time_limit(client, as_user):
    res = client.post('/api/rooms/create', json={'time_limit': 'soon'}, headers=as_user('alice'))
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'invalid_time_limit'
    res = client.post('/api/rooms/create', json={'time_limit': 1}, headers=as_user('alice'))
    assert res.status_code == 400


def test_create_retries_code_collisions(client, as_user, monkeypatch):
    from guess4.services.games import rooms
    first = _create(client, as_user)
    codes = iter([first, first, '654321'])
    monkeypatch.setattr(rooms, 'generate_room_code', lambda: next(codes))
    assert _create(client, as_user, user='carol') == '654321'


def test_state_unknown_room(client):
    res = client.get('/api/rooms/000000/state')
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'room_not_found'


def test_join_errors(client, as_user):
    res = client.post('/api/rooms/join', json={'room_code': '000000'}, headers=as_user('bob'))
    assert res.status_code == 404
    code = _create(client, as_user)
    res = client.post('/api/rooms/join', json={'room_code': code}, headers=as_user('bob'))
    assert res.status_code == 200
    assert res.get_json()['player'] == 2
    res = client.post('/api/rooms/join', json={'room_code': code}, headers=as_user('carol'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'room_full'
    res = client.post('/api/rooms/join', json={}, headers=as_user('carol'))
    assert res.status_code == 400


def test_secret_validation_messages(client, as_user):
    code = _create(client, as_user)
    res = client.post(f'/api/rooms/{code}/secret', json={'secret': '1230'}, headers=as_user('alice'))
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Cannot contain 0', 'kind': 'invalid_secret'}
    res = client.post(f'/api/rooms/{code}/secret', json={'secret': '1123'}, headers=as_user('alice'))
    assert res.get_json()['error'] == 'Cannot have repeating digits'
    # Player number inferred from the caller's seat
    res = client.post(f'/api/rooms/{code}/secret', json={'secret': '1234'}, headers=as_user('alice'))
    assert res.status_code == 200
    assert res.get_json()['room']['player1_ready'] is True


def test_secret_for_someone_elses_seat(client, as_user):
    code = _create(client, as_user)
    client.post('/api/rooms/join', json={'room_code': code}, headers=as_user('bob'))
    res = client.post(f'/api/rooms/{code}/secret', json={'player': 1, 'secret': '1234'}, headers=as_user('bob'))
    assert res.status_code == 403
    res = client.post(f'/api/rooms/{code}/secret', json={'secret': '1234'}, headers=as_user('mallory'))
    assert res.status_code == 403


def test_full_game_flow_to_tie(client, as_user):
    code = _ready_room(client, as_user)
    state = client.get(f'/api/rooms/{code}/state').get_json()
    assert state['phase'] == 'active'
    assert state['current_turn_player'] == 1

    res = client.post(f'/api/rooms/{code}/guess', json={'number': '5678'}, headers=as_user('alice'))
    assert res.status_code == 200
    body = res.get_json()
    assert body['guess'] == {'number': '5678', 'correct_digits': 4, 'correct_positions': 4}
    # Player 2 still owed an equalizing turn
    assert body['room']['winner'] is None
    assert body['room']['current_turn_player'] == 2

    res = client.post(f'/api/rooms/{code}/guess', json={'number': '1234'}, headers=as_user('bob'))
    assert res.status_code == 200
    room = res.get_json()['room']
    assert room['winner'] == 'tie'
    assert room['phase'] == 'finished'
    assert room['current_turn_player'] is None
    assert room['finished_at'] is not None

    me = client.get('/me', headers=as_user('alice')).get_json()
    assert me['stats']['games_tied'] == 1


def test_guess_rules_over_http(client, as_user):
    code = _ready_room(client, as_user)
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '12a4'}, headers=as_user('alice'))
    assert res.status_code == 400
    assert res.get_json()['kind'] == 'invalid_guess'
    # Zero and repeats are fine for guesses
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '0000'}, headers=as_user('alice'))
    assert res.status_code == 200
    # Not player 1's turn any more
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '1111'}, headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'stale_write'


def test_guess_with_stale_version(client, as_user):
    code = _ready_room(client, as_user)
    version = client.get(f'/api/rooms/{code}/state').get_json()['version']
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '1111', 'version': version - 1}, headers=as_user('alice'))
    assert res.status_code == 409
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '1111', 'version': version}, headers=as_user('alice'))
    assert res.status_code == 200
    assert res.get_json()['room']['version'] == version + 1


def test_guess_before_start(client, as_user):
    code = _create(client, as_user)
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '1111'}, headers=as_user('alice'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'game_not_active'


def test_start_is_idempotent(client, as_user):
    code = _ready_room(client, as_user)
    res = client.post(f'/api/rooms/{code}/start', headers=as_user('bob'))
    assert res.status_code == 200
    assert res.get_json()['started'] is False
    assert res.get_json()['room']['game_started'] is True
    res = client.post(f'/api/rooms/{code}/start', headers=as_user('mallory'))
    assert res.status_code == 403


def test_timeout_refused_while_clock_runs(client, as_user):
    code = _ready_room(client, as_user)
    res = client.post(f'/api/rooms/{code}/timeout', json={'player': 1}, headers=as_user('bob'))
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'clock_still_running'


def test_timeout_after_clock_runs_out(client, as_user, monkeypatch):
    code = _create(client, as_user, time_limit=30)
    client.post('/api/rooms/join', json={'room_code': code}, headers=as_user('bob'))
    client.post(f'/api/rooms/{code}/secret', json={'secret': '1234'}, headers=as_user('alice'))
    client.post(f'/api/rooms/{code}/secret', json={'secret': '5678'}, headers=as_user('bob'))
    started = client.get(f'/api/rooms/{code}/state').get_json()['turn_started_at']
    monkeypatch.setattr(clock, 'time', types.SimpleNamespace(time=lambda: started + 31))

    res = client.post(f'/api/rooms/{code}/timeout', json={'player': 1}, headers=as_user('alice'))
    assert res.status_code == 200
    body = res.get_json()
    assert body['expired'] is True
    assert body['room']['winner'] == 2
    assert body['room']['player1_time_remaining'] == 0

    # A second report is a no-op
    res = client.post(f'/api/rooms/{code}/timeout', json={'player': 1}, headers=as_user('bob'))
    assert res.status_code == 200
    assert res.get_json()['expired'] is False

    me = client.get('/me', headers=as_user('bob')).get_json()
    assert me['stats']['games_won'] == 1


def test_leave_flows(client, as_user):
    # Alone in the room: it disappears
    code = _create(client, as_user)
    res = client.post(f'/api/rooms/{code}/leave', json={}, headers=as_user('alice'))
    assert res.status_code == 200
    assert res.get_json()['room'] is None
    assert client.get(f'/api/rooms/{code}/state').status_code == 404

    # Mid-game: the leaver forfeits
    code = _ready_room(client, as_user)
    res = client.post(f'/api/rooms/{code}/leave', json={}, headers=as_user('bob'))
    assert res.status_code == 200
    assert res.get_json()['room']['winner'] == 1

    # Already over: leaving is fine and changes nothing
    res = client.post(f'/api/rooms/{code}/leave', json={}, headers=as_user('alice'))
    assert res.status_code == 200
    assert res.get_json()['room']['winner'] == 1


def test_profile_and_active_room(client, as_user):
    res = client.put('/profile', json={'username': 'alice', 'display_name': 'Alice A.'}, headers=as_user('alice'))
    assert res.status_code == 200
    assert client.put('/profile', json={}, headers=as_user('alice')).status_code == 400

    assert client.get('/rooms/active', headers=as_user('alice')).get_json()['room'] is None
    code = _create(client, as_user)
    active = client.get('/rooms/active', headers=as_user('alice')).get_json()
    assert active['player'] == 1
    assert active['room']['room_code'] == code
    assert active['room']['player1_profile'] == {'username': 'alice', 'display_name': 'Alice A.'}
    assert active['room']['player2_profile'] is None


def test_each_request_uses_its_own_identity(client, as_user):
    code = _create(client, as_user)
    res = client.post('/api/rooms/join', json={'room_code': code}, headers=as_user('bob'))
    assert res.status_code == 200
    room = res.get_json()['room']
    assert (room['player1_id'], room['player2_id']) == ('alice', 'bob')
    assert client.get('/me', headers=as_user('alice')).get_json()['user_id'] == 'alice'
    assert client.get('/me', headers=as_user('bob')).get_json()['user_id'] == 'bob'


def test_leave_empty_room_reports_deletion(client, as_user):
    code = _create(client, as_user)
    res = client.post(f'/api/rooms/{code}/leave', json={}, headers=as_user('alice'))
    assert res.status_code == 200
    assert res.get_json() == {'left': True, 'room': None}


def test_join_accepts_numeric_room_code(client, as_user):
    code = _create(client, as_user)
    res = client.post('/api/rooms/join', json={'room_code': int(code)}, headers=as_user('bob'))
    assert res.status_code == 200
    assert res.get_json()['player'] == 2
    res = client.post('/api/rooms/join', json={'room_code': 111}, headers=as_user('carol'))
    assert res.status_code == 404


def test_guess_with_malformed_version(client, as_user):
    code = _ready_room(client, as_user)
    res = client.post(f'/api/rooms/{code}/guess', json={'number': '1111', 'version': 'latest'}, headers=as_user('alice'))
    assert res.status_code == 400
    assert res.get_json() == {'error': 'Version must be an integer', 'kind': 'invalid_guess'}


def test_leaderboard(client, as_user):
    assert client.get('/leaderboard').get_json()['players'] == []

    client.put('/profile', json={'username': 'bob'}, headers=as_user('bob'))
    code = _ready_room(client, as_user)
    client.post(f'/api/rooms/{code}/guess', json={'number': '9999'}, headers=as_user('alice'))
    client.post(f'/api/rooms/{code}/guess', json={'number': '1234'}, headers=as_user('bob'))

    res = client.get('/leaderboard?order_by=win_rate&limit=5')
    assert res.status_code == 200
    players = res.get_json()['players']
    assert [p['user_id'] for p in players] == ['bob', 'alice']
    assert players[0]['username'] == 'bob'
    assert players[0]['win_rate'] == 100.0
    assert players[1]['games_lost'] == 1

    assert client.get('/leaderboard?order_by=secret').status_code == 400
    assert client.get('/leaderboard?limit=0').status_code == 400
