import os

# Must be in place before the application module reads its configuration
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['WTF_CSRF_ENABLED'] = 'false'
os.environ['SECRET_KEY'] = 'test-secret'
os.environ['SUPER_ADMINS'] = 'superuser'
os.environ.pop('INITIAL_MANAGER_USERNAME', None)
os.environ.pop('AZURE_STORAGE_CONNECTION_STRING', None)

from datetime import date, datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from ellarises.app import app as flask_app  # noqa: E402
from ellarises.models import (db, seed_lookups, User, Participant, Donation, EventTemplate, Location,  # noqa: E402
                              EventOccurrence, Registration, MilestoneType, Milestone, Survey,
                              ROLE_MANAGER, ROLE_USER)

PASSWORD = 'correct horse battery'


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True, WTF_CSRF_ENABLED=False, SUPER_ADMINS=frozenset({'superuser'}))
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        seed_lookups()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


class Factory:
    """Creates committed rows in a short-lived app context and hands back ids."""

    def __init__(self, app):
        self.app = app

    def _save(self, obj, id_attr):
        with self.app.app_context():
            db.session.add(obj)
            db.session.commit()
            return getattr(obj, id_attr)

    def participant(self, first_name='Ana', last_name='Pérez', email=None, **fields):
        return self._save(Participant(first_name=first_name, last_name=last_name, email=email, **fields),
                          'participant_id')

    def user(self, username, role=ROLE_USER, participant_id=None, password=PASSWORD):
        user = User(username=username, role=role, participant_id=participant_id)
        user.set_password(password)
        return self._save(user, 'user_id')

    def donation(self, participant_id, amount='25.00', when=date(2024, 3, 15)):
        return self._save(Donation(participant_id=participant_id, donation_amount=Decimal(amount),
                                   donation_date=when), 'donation_id')

    def occurrence(self, name='STEAM Workshop', location='Community Center',
                   start=datetime(2030, 5, 1, 10, 0), capacity=None):
        with self.app.app_context():
            template = EventTemplate(name=name, description='Hands-on %s' % name.lower())
            place = Location(name=location)
            occurrence = EventOccurrence(template=template, location=place, start_time=start, capacity=capacity)
            db.session.add(occurrence)
            db.session.commit()
            return occurrence.event_occurrence_id

    def registration(self, participant_id, event_occurrence_id):
        return self._save(Registration(participant_id=participant_id, event_occurrence_id=event_occurrence_id),
                          'registration_id')

    def survey(self, participant_id, event_occurrence_id, recommendation=5):
        survey = Survey(participant_id=participant_id, event_occurrence_id=event_occurrence_id,
                        score_recommendation=recommendation, submission_date=date(2030, 5, 2))
        survey.classify()
        return self._save(survey, 'survey_id')

    def milestone(self, participant_id, title='Graduated high school', when=date(2024, 6, 1)):
        with self.app.app_context():
            milestone = Milestone(participant_id=participant_id, milestone_type=MilestoneType(title=title),
                                  milestone_date=when)
            db.session.add(milestone)
            db.session.commit()
            return milestone.milestone_id

    def count(self, model, **filters):
        with self.app.app_context():
            stmt = select(func.count()).select_from(model)
            for name, value in filters.items():
                stmt = stmt.where(getattr(model, name) == value)
            return db.session.scalar(stmt)

    def get(self, model, ident):
        with self.app.app_context():
            obj = db.session.get(model, ident)
            if obj is not None:
                db.session.expunge(obj)
            return obj


@pytest.fixture
def factory(app):
    return Factory(app)


def login(client, username, password=PASSWORD):
    return client.post('/login', data={'username': username, 'password': password})


@pytest.fixture
def manager_client(client, factory):
    factory.user('director', role=ROLE_MANAGER)
    login(client, 'director')
    return client


@pytest.fixture
def member(factory):
    """A participant with a plain user account; returns (participant_id, user_id)."""
    participant_id = factory.participant('Maya', 'Lopez', email='maya@example.org')
    user_id = factory.user('maya', participant_id=participant_id)
    return participant_id, user_id


@pytest.fixture
def member_client(client, member):
    login(client, 'maya')
    return client
