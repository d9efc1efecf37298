from unittest.mock import patch

from recovery_engine.catalog import load_exercise_library

WORKOUT_DATE = "2025-11-11"


def test_list_exercises(client):
    response = client.get('/v1/exercises')
    assert response.status_code == 200
    exercises = response.get_json()['exercises']
    assert len(exercises) == len(load_exercise_library())
    push_up = next(ex for ex in exercises if ex['id'] == 'ex03')
    assert push_up['name'] == "Push-up"
    assert push_up['muscles'][0] == {'muscle': 'Pectoralis', 'percentage': 50.0, 'primary': True}


def test_list_baselines(client):
    response = client.get('/v1/baselines')
    assert response.status_code == 200
    baselines = response.get_json()['baselines']
    assert len(baselines) == 15
    assert [b['muscle'] for b in baselines] == sorted(b['muscle'] for b in baselines)
    assert {'muscle': 'Pectoralis', 'baseline_capacity': 3744} in baselines


def test_fatigue_uses_default_baselines(client):
    payload = {'workout': {'exercises': [{'exercise_id': 'ex02', 'total_volume': 2000}]}}
    response = client.post('/v1/fatigue', json=payload)
    assert response.status_code == 200
    data = response.get_json()
    pecs = next(s for s in data['muscle_states'] if s['muscle'] == 'Pectoralis')
    assert pecs['fatigue_percent'] == 24.0
    assert data['warnings'] == []
    assert 'timestamp' in data


def test_fatigue_with_custom_baselines(client):
    payload = {
        'workout': {'exercises': [{'exercise_id': 'ex07', 'total_volume': 1100}]},
        'baselines': {'Biceps': 1000, 'Forearms': 1000},
    }
    response = client.post('/v1/fatigue', json=payload)
    assert response.status_code == 200
    data = response.get_json()
    assert [s['muscle'] for s in data['muscle_states']] == ['Biceps', 'Forearms']
    assert data['muscle_states'][0]['fatigue_percent'] == 88.0
    assert data['warnings'] == ["Biceps: Approaching capacity at 88.0%"]


def test_fatigue_missing_workout(client):
    response = client.post('/v1/fatigue', json={'exercises': []})
    assert response.status_code == 400
    assert "workout" in response.get_json()['error']


def test_fatigue_invalid_workout(client):
    response = client.post('/v1/fatigue', json={'workout': {'exercises': []}})
    assert response.status_code == 400
    assert response.get_json()['error'] == "Workout exercises list cannot be empty"


def test_baseline_check(client):
    payload = {
        'exercises': [{'exercise_id': 'ex03', 'sets': [{'weight': 200, 'reps': 40, 'to_failure': True}]}],
        'workout_date': WORKOUT_DATE,
    }
    response = client.post('/v1/baselines/check', json=payload)
    assert response.status_code == 200
    data = response.get_json()

    assert len(data['suggestions']) == 1
    assert data['suggestions'][0]['muscle'] == 'Pectoralis'
    assert data['suggestions'][0]['suggested_baseline'] == 4000
    assert data['formatted'][0]['increase'] == 256
    assert data['validation']['Pectoralis']['is_valid'] is True
    assert data['message'].startswith("You exceeded your Pectoralis baseline by 6.8%")


def test_baseline_check_nothing_to_update(client):
    payload = {'exercises': [], 'workout_date': WORKOUT_DATE}
    response = client.post('/v1/baselines/check', json=payload)
    assert response.status_code == 200
    data = response.get_json()
    assert data['suggestions'] == []
    assert data['validation'] == {}
    assert data['message'] == "No baseline updates needed. Great workout!"


def test_baseline_check_missing_date(client):
    response = client.post('/v1/baselines/check', json={'exercises': []})
    assert response.status_code == 400
    assert response.get_json()['error'] == "Workout date is required"


def test_recovery(client):
    payload = {
        'muscle_states': [{'muscle': 'Pectoralis', 'fatigue_percent': 94.4}],
        'workout_timestamp': '2025-11-11T08:00:00.000Z',
        'current_timestamp': '2025-11-12T08:00:00.000Z',
    }
    response = client.post('/v1/recovery', json=payload)
    assert response.status_code == 200
    data = response.get_json()
    assert data['timestamp'] == '2025-11-12T08:00:00.000Z'
    state = data['muscle_states'][0]
    assert state['current_fatigue'] == 79.4
    assert state['projections'] == {'24h': 64.4, '48h': 49.4, '72h': 34.4}
    assert state['status'] == 'caution'


def test_recovery_invalid_timestamp(client):
    payload = {
        'muscle_states': [{'muscle': 'Pectoralis', 'fatigue_percent': 50}],
        'workout_timestamp': 'not-a-date',
        'current_timestamp': '2025-11-12T08:00:00.000Z',
    }
    response = client.post('/v1/recovery', json=payload)
    assert response.status_code == 400
    assert "Workout timestamp" in response.get_json()['error']


def test_recommendations(client):
    payload = {
        'target_muscle': 'Quadriceps',
        'muscle_states': [{'muscle': 'Quadriceps', 'current_fatigue': 0}],
        'options': {'top_n': 3},
    }
    response = client.post('/v1/recommendations', json=payload)
    assert response.status_code == 200
    data = response.get_json()
    assert [r['exercise_id'] for r in data['safe']] == ['ex12', 'ex24', 'ex14']
    assert data['total_filtered'] == 6
    assert data['total_safe'] == 6
    assert data['unsafe'] == []


def test_recommendations_unknown_option(client):
    payload = {
        'target_muscle': 'Quadriceps',
        'muscle_states': [],
        'options': {'equipment': ['Barbell']},
    }
    response = client.post('/v1/recommendations', json=payload)
    assert response.status_code == 400
    assert "Unrecognized recommendation options" in response.get_json()['error']


def test_recommendations_missing_target(client):
    response = client.post('/v1/recommendations', json={'muscle_states': []})
    assert response.status_code == 400
    assert "Target muscle is required" in response.get_json()['error']


def test_post_without_json_body(client):
    for path in ('/v1/fatigue', '/v1/baselines/check', '/v1/recovery', '/v1/recommendations'):
        response = client.post(path, data="not json", content_type='text/plain')
        assert response.status_code == 400, path
        assert 'error' in response.get_json()


def test_unknown_route_is_404(client):
    response = client.get('/v1/nope')
    assert response.status_code == 404


def test_unexpected_error_returns_500(client):
    payload = {
        'muscle_states': [{'muscle': 'Pectoralis', 'fatigue_percent': 50}],
        'workout_timestamp': '2025-11-11T08:00:00.000Z',
        'current_timestamp': '2025-11-12T08:00:00.000Z',
    }
    with patch('recovery_engine.blueprints.analysis.calculate_recovery', side_effect=RuntimeError("boom")):
        response = client.post('/v1/recovery', json=payload)
    assert response.status_code == 500
    assert response.get_json()['error'] == "An internal server error occurred"


def test_post_with_non_object_json_body(client):
    for path in ('/v1/fatigue', '/v1/baselines/check', '/v1/recovery', '/v1/recommendations'):
        response = client.post(path, json=[1])
        assert response.status_code == 400, path
        assert 'error' in response.get_json()


def test_fatigue_malformed_exercise_entry(client):
    response = client.post('/v1/fatigue', json={'workout': {'exercises': ['ex02']}})
    assert response.status_code == 400
    assert response.get_json()['error'] == "Workout exercise at index 0 must be an object"


def test_recommendations_bad_option_type(client):
    payload = {
        'target_muscle': 'Quadriceps',
        'muscle_states': [],
        'options': {'estimated_sets': '3'},
    }
    response = client.post('/v1/recommendations', json=payload)
    assert response.status_code == 400
    assert response.get_json()['error'] == "estimated_sets must be a non-negative number"
