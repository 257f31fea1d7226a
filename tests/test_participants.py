from ellarises.models import Participant, Donation, Survey, Registration, Milestone, User


def test_list_shows_all_participants_to_managers(manager_client, factory):
    factory.participant('Ana', 'Pérez')
    factory.participant('Bo', 'Chen')

    response = manager_client.get('/participants')

    assert response.status_code == 200
    text = response.get_data(as_text=True)
    assert 'Ana Pérez' in text
    assert 'Bo Chen' in text
    assert 'Edit</a>' in text


def test_list_shows_only_own_record_to_members(member_client, factory):
    factory.participant('Bo', 'Chen')

    text = member_client.get('/participants').get_data(as_text=True)

    assert 'Maya Lopez' in text
    assert 'Bo Chen' not in text
    assert 'Edit</a>' not in text


def test_search_matches_full_name_without_accents(manager_client, factory):
    factory.participant('Ana', 'Pérez')
    factory.participant('Bo', 'Chen')

    text = manager_client.get('/participants', query_string={'q': 'ana per'}).get_data(as_text=True)

    assert 'Ana Pérez' in text
    assert 'Bo Chen' not in text


def test_add_participant(manager_client, factory):
    response = manager_client.post('/participants/add', data={
        'first_name': 'Lena', 'last_name': 'Ortiz', 'email': 'Lena@Example.org',
        'dob': '2008-02-29', 'city': 'Provo', 'state': 'UT', 'zip_code': '84601',
    })

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/participants')
    assert factory.count(Participant, email='lena@example.org') == 1


def test_add_participant_mid_donation_returns_to_donation_form(manager_client, factory):
    response = manager_client.post('/participants/add', data={
        'first_name': 'Lena', 'last_name': 'Ortiz', 'return_to': 'donation',
    })

    assert response.status_code == 302
    assert '/donations/add?participant_id=' in response.headers['Location']


def test_add_participant_refuses_duplicate_email(manager_client, factory):
    factory.participant(email='ana@example.org')

    response = manager_client.post('/participants/add', data={'first_name': 'Other', 'email': 'ANA@example.org'})

    assert response.status_code == 200
    assert b'Another participant already uses that email.' in response.data
    assert factory.count(Participant) == 1


def test_edit_updates_whitelisted_fields_only(manager_client, factory):
    participant_id = factory.participant(city='Orem', profile_picture_url='https://cdn.example.org/keep.png')

    response = manager_client.post('/participants/edit/%d' % participant_id, data={
        'first_name': 'Ana', 'last_name': 'Pérez', 'city': 'Provo',
        'profile_picture_url': 'https://evil.example.org/x.png',
    })

    assert response.status_code == 302
    participant = factory.get(Participant, participant_id)
    assert participant.city == 'Provo'
    assert participant.profile_picture_url == 'https://cdn.example.org/keep.png'


def test_edit_missing_participant_is_not_found(manager_client):
    assert manager_client.get('/participants/edit/999').status_code == 404
    assert manager_client.post('/participants/edit/999', data={}).status_code == 404


def test_delete_cascades_to_every_dependent_table(manager_client, factory):
    participant_id = factory.participant()
    occurrence_id = factory.occurrence()
    factory.donation(participant_id)
    factory.donation(participant_id)
    factory.survey(participant_id, occurrence_id)
    factory.registration(participant_id, occurrence_id)
    factory.milestone(participant_id)
    factory.user('ana', participant_id=participant_id)
    bystander = factory.participant('Bo', 'Chen')
    factory.donation(bystander)

    response = manager_client.post('/participants/delete/%d' % participant_id)

    assert response.status_code == 302
    for model in (Donation, Survey, Registration, Milestone, User):
        assert factory.count(model, participant_id=participant_id) == 0
    assert factory.get(Participant, participant_id) is None
    assert factory.count(Donation, participant_id=bystander) == 1


def test_delete_missing_participant_is_not_found(manager_client):
    assert manager_client.post('/participants/delete/999').status_code == 404


def test_members_cannot_delete(member_client, member, factory):
    participant_id, _ = member
    assert member_client.post('/participants/delete/%d' % participant_id).status_code == 403
    assert factory.get(Participant, participant_id) is not None
