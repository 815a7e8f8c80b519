from conftest import CATEGORIES


def _create(client, name='Olivia'):
    res = client.post('/api/rooms/create', json={'name': name})
    assert res.status_code == 201
    return res.get_json()


def _join(client, code, name):
    res = client.post('/api/rooms/join', json={'invitation_code': code, 'name': name})
    assert res.status_code == 201
    return res.get_json()


def test_health(client):
    assert client.get('/').get_json() == {'status': 'ok'}


def test_create_and_lookup_room(client):
    created = _create(client)
    code = created['room']['invitation_code']
    assert created['player']['is_organizer'] is True
    res = client.get(f'/api/rooms/code/{code.lower()}')
    assert res.status_code == 200
    assert res.get_json()['id'] == created['room']['id']


def test_join_and_state(client):
    created = _create(client)
    room_id = created['room']['id']
    alice = _join(client, created['room']['invitation_code'], 'Alice')
    res = client.get(f'/api/rooms/{room_id}/state?player_id={alice["id"]}')
    assert res.status_code == 200
    state = res.get_json()
    assert state['room']['state'] == 'lobby'
    assert state['round'] is None
    assert any(p['name'] == 'Alice' for p in state['players'])
    assert state['next'] == {'view': 'lobby', 'path': f'/lobby/{room_id}?player_id={alice["id"]}'}


def test_error_shapes(client):
    res = client.post('/api/rooms/join', json={'invitation_code': 'ABC', 'name': 'Alice'})
    assert res.status_code == 400
    assert res.get_json()['success'] is False
    res = client.post('/api/rooms/join', json={'invitation_code': 'ZZZZZZ', 'name': 'Alice'})
    assert res.status_code == 404
    assert res.get_json()['error'] == 'Room not found'
    created = _create(client)
    res = client.post(f"/api/rooms/{created['room']['id']}/start",
                      json={'player_id': created['player']['id'], 'categories': CATEGORIES})
    assert res.status_code == 409


def test_full_game_over_http(client):
    created = _create(client)
    room_id = created['room']['id']
    org_id = created['player']['id']
    bob = _join(client, created['room']['invitation_code'], 'Bob')

    res = client.post(f'/api/rooms/{room_id}/start', json={'player_id': org_id, 'categories': CATEGORIES})
    assert res.status_code == 201
    round_id = res.get_json()['id']

    for pid, texts in [(org_id, ['Salmon', 'Spain', 'Snake', 'Sara', 'Silver']),
                       (bob['id'], ['Sushi', 'Sudan', '', 'Sam', 'Sepia'])]:
        res = client.post(f'/api/rooms/{room_id}/rounds/{round_id}/answers',
                          json={'player_id': pid, 'answers': texts, 'categories': CATEGORIES})
        assert res.status_code == 200
        assert len(res.get_json()['answers']) == 5

    # Guests cannot close the round
    res = client.post(f'/api/rooms/{room_id}/rounds/{round_id}/end', json={'player_id': bob['id']})
    assert res.status_code == 403
    res = client.post(f'/api/rooms/{room_id}/rounds/{round_id}/end', json={'player_id': org_id})
    assert res.get_json()['state'] == 'scoring'

    state = client.get(f'/api/rooms/{room_id}/state?player_id={org_id}').get_json()
    assert state['next']['view'] == 'scoring'

    results = client.get(f'/api/rooms/{room_id}/rounds/{round_id}/results').get_json()
    scores = []
    for entry in results['results']:
        for slot in entry['answers']:
            if slot['answer_id']:
                scores.append({'answer_id': slot['answer_id'], 'points': 10 if slot['text'] else 0})
    res = client.post(f'/api/rooms/{room_id}/rounds/{round_id}/scores', json={'player_id': org_id, 'scores': scores})
    assert res.status_code == 200

    res = client.post(f'/api/rooms/{room_id}/rounds/{round_id}/finalize', json={'player_id': org_id})
    assert res.get_json()['state'] == 'result_screen'

    state = client.get(f'/api/rooms/{room_id}/state?player_id={bob["id"]}').get_json()
    assert state['round']['state'] == 'completed'
    assert all(not p['is_ready'] for p in state['players'])
    assert state['next']['view'] == 'round_results'

    ranking = client.get(f'/api/rooms/{room_id}/ranking').get_json()['ranking']
    assert [(r['player_id'], r['total'], r['position']) for r in ranking] == [(org_id, 50, 1), (bob['id'], 40, 2)]

    res = client.post(f'/api/rooms/{room_id}/rounds', json={'player_id': org_id})
    assert res.status_code == 201
    assert res.get_json()['round_number'] == 2

    res = client.post(f'/api/rooms/{room_id}/finish', json={'player_id': org_id})
    assert res.get_json()['state'] == 'finished'
    state = client.get(f'/api/rooms/{room_id}/state?player_id={bob["id"]}').get_json()
    assert state['next'] == {'view': 'final_ranking', 'path': f'/ranking/{room_id}'}


def test_change_letter_endpoint(client):
    created = _create(client)
    room_id = created['room']['id']
    org_id = created['player']['id']
    bob = _join(client, created['room']['invitation_code'], 'Bob')
    round_id = client.post(f'/api/rooms/{room_id}/start',
                           json={'player_id': org_id, 'categories': CATEGORIES}).get_json()['id']

    res = client.post('/api/change-letter', json={'roomId': room_id, 'roundId': round_id})
    assert res.status_code == 400
    assert res.get_json() == {'success': False, 'error': 'Incomplete data'}

    res = client.post('/api/change-letter', json={'roomId': room_id, 'roundId': round_id, 'playerId': bob['id']})
    assert res.status_code == 403
    assert res.get_json()['success'] is False

    res = client.post('/api/change-letter', json={'roomId': room_id, 'roundId': round_id, 'playerId': org_id})
    assert res.status_code == 200
    assert res.get_json() == {'success': True}


def test_identity_falls_back_to_session_cookie(client):
    created = _create(client)
    room_id = created['room']['id']
    # create_room remembered the organizer for this browser
    state = client.get(f'/api/rooms/{room_id}/state').get_json()
    assert state['player']['id'] == created['player']['id']
    assert state['player']['is_organizer'] is True
