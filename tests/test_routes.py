import logging
import threading

import pytest

from services.supabase_client import SupabaseClient
from valentine_app import create_app

EXPECTED_ROW = {
    'name': 'Ada Lovelace',
    'age': 36,
    'gender': 'female',
    'email': 'ada@example.com',
    'interests': 'Mathematics, poetry',
    'lookingFor': 'Someone who likes engines',
    'idealDate': '',
    'dealBreakers': 'Rudeness',
}


def test_index_renders_empty_form(client):
    response = client.get('/')

    assert response.status_code == 200
    body = response.get_data(as_text=True)
    assert 'Find Your Valentine' in body
    assert 'name="submission_id"' in body
    assert 'Select gender' in body
    assert response.headers['X-Request-ID']


def test_each_page_load_gets_its_own_submission_id(client):
    first = client.get('/').get_data(as_text=True)
    second = client.get('/').get_data(as_text=True)

    def submission_id(body):
        marker = 'id="submission_id" name="submission_id" type="hidden" value="'
        start = body.index(marker) + len(marker)
        return body[start:body.index('"', start)]

    assert submission_id(first) != submission_id(second)


def test_empty_submit_shows_every_required_error_and_skips_storage(client, store):
    response = client.post('/', data={})

    assert response.status_code == 400
    body = response.get_data(as_text=True)
    for message in ('Name is required', 'Age is required', 'Gender is required',
                    'Email is required', 'This field is required'):
        assert message in body
    assert store.calls == []


@pytest.mark.parametrize('age, message', [
    ('17', 'Minimum age is 18'),
    ('121', 'Maximum age is 120'),
])
def test_out_of_range_age_is_rejected(client, store, valid_profile, age, message):
    valid_profile['age'] = age

    response = client.post('/', data=valid_profile)

    assert response.status_code == 400
    assert message in response.get_data(as_text=True)
    assert store.calls == []


@pytest.mark.parametrize('age', ['18', '120'])
def test_boundary_ages_are_accepted(client, store, valid_profile, age):
    valid_profile['age'] = age

    response = client.post('/', data=valid_profile)

    assert response.status_code == 302
    assert store.calls[0][1][0]['age'] == int(age)


def test_email_without_at_sign_is_rejected(client, store, valid_profile):
    valid_profile['email'] = 'ada.example.com'

    response = client.post('/', data=valid_profile)

    assert response.status_code == 400
    assert 'Invalid email address' in response.get_data(as_text=True)
    assert store.calls == []


def test_valid_submit_writes_exact_values_and_shows_thank_you(client, store, valid_profile):
    response = client.post('/', data=valid_profile)

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/thank-you')
    assert store.calls == [('valentine_profiles', [EXPECTED_ROW])]

    thank_you = client.get(response.headers['Location'])
    assert 'Thank You!' in thank_you.get_data(as_text=True)


def test_storage_failure_keeps_form_and_values(client, failing_store, valid_profile):
    response = client.post('/', data=valid_profile)

    assert response.status_code == 502
    body = response.get_data(as_text=True)
    assert 'Failed to submit form. Please try again.' in body
    assert 'Find Your Valentine' in body
    assert 'value="Ada Lovelace"' in body
    assert 'value="ada@example.com"' in body
    assert 'Rudeness' in body
    assert 'value="a1b2c3"' in body


def test_retry_after_failure_succeeds(client, failing_store, valid_profile):
    client.post('/', data=valid_profile)
    failing_store.error = None

    response = client.post('/', data=valid_profile)

    assert response.status_code == 302
    assert len(failing_store.calls) == 2


def test_resubmitting_a_finished_form_does_not_write_again(client, store, valid_profile):
    client.post('/', data=valid_profile)

    response = client.post('/', data=valid_profile)

    assert response.status_code == 302
    assert len(store.calls) == 1


def test_double_submit_while_pending_writes_once(app, store, valid_profile):
    store.gate = threading.Event()
    results = []

    def first_submit():
        results.append(app.test_client().post('/', data=valid_profile).status_code)

    worker = threading.Thread(target=first_submit)
    worker.start()
    assert store.entered.wait(timeout=5)

    second = app.test_client().post('/', data=valid_profile)

    store.gate.set()
    worker.join(timeout=5)

    assert second.status_code == 409
    assert 'already being processed' in second.get_data(as_text=True)
    assert results == [302]
    assert len(store.calls) == 1


def test_unconfigured_storage_fails_softly(logger, valid_profile):
    app = create_app({
        'TESTING': True,
        'WTF_CSRF_ENABLED': False,
        'RATELIMIT_ENABLED': False,
    }, store=SupabaseClient('', '', logger))
    client = app.test_client()

    assert client.get('/api/health').get_json()['storage_configured'] is False

    response = client.post('/', data=valid_profile)
    assert response.status_code == 502
    assert 'Failed to submit form. Please try again.' in response.get_data(as_text=True)


def test_csrf_token_is_required_when_enabled(store, valid_profile):
    app = create_app({
        'TESTING': True,
        'RATELIMIT_ENABLED': False,
        'SECRET_KEY': 'test-secret',
    }, store=store)

    response = app.test_client().post('/', data=valid_profile)

    assert response.status_code == 400
    assert 'Your session expired' in response.get_data(as_text=True)
    assert store.calls == []


def test_api_submit(client, store, valid_profile):
    valid_profile['age'] = 36

    response = client.post('/api/valentine-profiles', json=valid_profile)

    assert response.status_code == 201
    assert response.get_json() == {'success': True, 'submission_id': 'a1b2c3'}
    assert store.calls == [('valentine_profiles', [EXPECTED_ROW])]


def test_api_submit_reports_field_errors(client, store):
    response = client.post('/api/valentine-profiles', json={'name': 'Ada', 'age': 16})

    assert response.status_code == 400
    errors = response.get_json()['errors']
    assert errors['age'] == 'Minimum age is 18'
    assert errors['email'] == 'Email is required'
    assert 'name' not in errors
    assert store.calls == []


def test_api_submit_storage_failure(client, failing_store, valid_profile):
    response = client.post('/api/valentine-profiles', json=valid_profile)

    assert response.status_code == 502
    assert response.get_json() == {'error': 'Failed to submit form. Please try again.'}


def test_validate_endpoint_checks_single_fields(client, store):
    response = client.post('/api/valentine-profiles/validate',
                           json={'age': '17', 'email': 'ada@example.com'})

    assert response.status_code == 200
    assert response.get_json() == {'errors': {'age': 'Minimum age is 18', 'email': None}}
    assert store.calls == []


def test_validate_endpoint_rejects_unknown_fields(client):
    response = client.post('/api/valentine-profiles/validate', json={'shoe_size': '42'})

    assert response.status_code == 400


def test_validate_endpoint_requires_json_object(client):
    response = client.post('/api/valentine-profiles/validate', json=['age'])

    assert response.status_code == 400


def test_health_check(client):
    data = client.get('/api/health').get_json()

    assert data['status'] == 'healthy'
    assert data['storage_configured'] is True


def test_csrf_token_endpoint(client):
    assert client.get('/api/csrf-token').get_json()['csrf_token']


def test_unknown_api_path_returns_json_404(client):
    response = client.get('/api/nope')

    assert response.status_code == 404
    assert response.get_json()['error'] == 'Resource not found'


def test_api_submit_rejects_non_text_values(client, store, valid_profile):
    valid_profile['email'] = 42

    response = client.post('/api/valentine-profiles', json=valid_profile)

    assert response.status_code == 400
    assert response.get_json()['errors'] == {'email': 'Must be text'}
    assert store.calls == []


def test_api_submit_rejects_non_object_body(client, store):
    response = client.post('/api/valentine-profiles', json=['age'])

    assert response.status_code == 400
    assert response.get_json() == {'error': 'Expected a JSON object of field values'}
    assert store.calls == []


def test_api_submit_integer_zero_age_is_out_of_range(client, store, valid_profile):
    valid_profile['age'] = 0

    response = client.post('/api/valentine-profiles', json=valid_profile)

    assert response.status_code == 400
    assert response.get_json()['errors'] == {'age': 'Minimum age is 18'}


def test_validate_endpoint_rejects_non_text_values(client):
    response = client.post('/api/valentine-profiles/validate', json={'email': 123})

    assert response.status_code == 400
    assert response.get_json()['errors'] == {'email': 'Must be text'}


def test_validate_endpoint_accepts_integer_age(client):
    response = client.post('/api/valentine-profiles/validate', json={'age': 0})

    assert response.status_code == 200
    assert response.get_json() == {'errors': {'age': 'Minimum age is 18'}}


def test_requests_are_logged_with_method_path_and_status(client, caplog):
    caplog.set_level(logging.INFO, logger='valentine_form')

    client.get('/api/health')

    messages = [record.getMessage() for record in caplog.records]
    assert 'request_started GET /api/health' in messages
    assert any(message.startswith('request_completed GET /api/health 200 ') and message.endswith('ms')
               for message in messages)
