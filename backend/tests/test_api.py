from conftest import ADMIN_HEADERS


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_join_returns_token_and_hidden_board(client):
    res = client.post('/api/join', json={'teamName': '  Alpha  '})
    assert res.status_code == 200
    data = res.get_json()
    assert data['teamName'] == 'Alpha'
    assert data['teamToken']
    assert data['score'] == 0
    assert data['gameActive'] is False
    assert data['remainingTime'] == 0
    # Default deck: 8 pairs
    assert len(data['board']) == 16
    assert all(card['content'] is None for card in data['board'])
    assert sorted(card['position'] for card in data['board']) == list(range(16))


def test_join_is_idempotent_per_name(client):
    first = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()
    again = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()
    assert again['teamToken'] == first['teamToken']
    assert [c['cardId'] for c in again['board']] == [c['cardId'] for c in first['board']]
    scoreboard = client.get('/api/scoreboard').get_json()
    assert [row['teamName'] for row in scoreboard] == ['Alpha']


def test_join_truncates_long_names(client):
    data = client.post('/api/join', json={'teamName': 'x' * 50}).get_json()
    assert data['teamName'] == 'x' * 30


def test_join_requires_a_name(client):
    for body in ({}, {'teamName': ''}, {'teamName': '   '}, {'teamName': 42}):
        res = client.post('/api/join', json=body)
        assert res.status_code == 400
        assert res.get_json()['code'] == 'ValidationError'


def test_admin_requires_key(client):
    assert client.get('/api/admin').status_code == 401
    res = client.post('/api/admin/start', headers={'X-Admin-Key': 'wrong'})
    assert res.status_code == 401
    assert res.get_json() == {'error': 'Unauthorized'}
    # The gate runs before any mutation
    assert client.get('/api/admin', headers=ADMIN_HEADERS).get_json()['config']['gameStarted'] is False


def test_admin_overview(client):
    client.post('/api/join', json={'teamName': 'Alpha'})
    data = client.get('/api/admin', headers=ADMIN_HEADERS).get_json()
    assert data['config']['timeLimitSec'] == 120
    assert len(data['deck']) == 8
    assert [t['name'] for t in data['teams']] == ['Alpha']


def test_admin_config_partial_update(client):
    res = client.post('/api/admin/config', json={'matchPoints': 7}, headers=ADMIN_HEADERS)
    assert res.status_code == 200
    config = res.get_json()['config']
    assert config['matchPoints'] == 7
    assert config['missPenalty'] == 2
    assert config['timeLimitSec'] == 120

    res = client.post('/api/admin/config', json={'missPenalty': -3}, headers=ADMIN_HEADERS)
    assert res.status_code == 400
    assert res.get_json()['code'] == 'ValidationError'


def test_admin_deck_replacement_applies_to_new_boards(client):
    old_board = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()['board']
    res = client.post('/api/admin/deck', json={'pairs': [
        {'pairId': 1, 'faceA': 'Apple', 'faceB': 'Quả táo', 'enabled': True},
        {'pairId': 2, 'faceA': 'Dog', 'faceB': 'Con chó', 'enabled': False},
    ]}, headers=ADMIN_HEADERS)
    assert res.get_json() == {'ok': True, 'count': 2}

    # Existing board unchanged, new team gets the new deck
    again = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()['board']
    assert len(again) == len(old_board) == 16
    beta = client.post('/api/join', json={'teamName': 'Beta'}).get_json()['board']
    assert len(beta) == 2

    res = client.post('/api/admin/deck', json={'pairs': 'nope'}, headers=ADMIN_HEADERS)
    assert res.status_code == 400


def test_admin_start_and_reset(client):
    token = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()['teamToken']
    assert client.post('/api/admin/start', headers=ADMIN_HEADERS).get_json() == {'ok': True}

    rejoin = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()
    assert rejoin['teamToken'] == token
    assert rejoin['gameActive'] is True
    assert 0 < rejoin['remainingTime'] <= 120

    assert client.post('/api/admin/reset', headers=ADMIN_HEADERS).get_json() == {'ok': True}
    assert client.get('/api/scoreboard').get_json() == []
    fresh = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()
    assert fresh['teamToken'] != token
    assert fresh['gameActive'] is False
