import sqlite3
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

ROLE_USER = 'user'
ROLE_MANAGER = 'manager'
ROLES = (ROLE_USER, ROLE_MANAGER)

NPS_DETRACTOR = 1
NPS_PASSIVE = 2
NPS_PROMOTER = 3
NPS_BUCKETS = {
    NPS_DETRACTOR: 'Detractor',
    NPS_PASSIVE: 'Passive',
    NPS_PROMOTER: 'Promoter',
}


@event.listens_for(Engine, 'connect')
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores foreign keys unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


def nps_bucket_for(score):
    """Classify a 1-5 recommendation score; anything else has no bucket."""
    if score is None:
        return None
    if 1 <= score <= 3:
        return NPS_DETRACTOR
    if score == 4:
        return NPS_PASSIVE
    if score == 5:
        return NPS_PROMOTER
    return None


def normalize_email(value):
    value = (value or '').strip().lower()
    return value or None


class Participant(db.Model):
    __tablename__ = 'participants'

    participant_id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    email = db.Column(db.String(255), unique=True)
    phone = db.Column(db.String(40))
    dob = db.Column(db.Date)
    city = db.Column(db.String(100))
    state = db.Column(db.String(50))
    zip_code = db.Column(db.String(20))
    school_or_employer = db.Column(db.String(200))
    profile_picture_url = db.Column(db.String(1024))

    @property
    def full_name(self):
        return ' '.join(part for part in (self.first_name, self.last_name) if part)


class User(db.Model):
    __tablename__ = 'users'

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.participant_id'))

    participant = db.relationship('Participant')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class Donation(db.Model):
    __tablename__ = 'donations'

    donation_id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.participant_id'), nullable=False)
    donation_amount = db.Column(db.Numeric(10, 2), nullable=False)
    donation_date = db.Column(db.Date, nullable=False)

    participant = db.relationship('Participant')


class EventTemplate(db.Model):
    __tablename__ = 'event_templates'

    event_template_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)


class Location(db.Model):
    __tablename__ = 'locations'

    location_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)


class EventOccurrence(db.Model):
    __tablename__ = 'event_occurrences'

    event_occurrence_id = db.Column(db.Integer, primary_key=True)
    event_template_id = db.Column(db.Integer, db.ForeignKey('event_templates.event_template_id'), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey('locations.location_id'), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime)
    capacity = db.Column(db.Integer)  # NULL or 0 = no limit

    template = db.relationship('EventTemplate')
    location = db.relationship('Location')

    @property
    def name(self):
        return self.template.name if self.template else ''


class Registration(db.Model):
    __tablename__ = 'registrations'

    registration_id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.participant_id'), nullable=False)
    event_occurrence_id = db.Column(db.Integer, db.ForeignKey('event_occurrences.event_occurrence_id'), nullable=False)
    registered_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('participant_id', 'event_occurrence_id', name='unique_registration'),)

    participant = db.relationship('Participant')
    occurrence = db.relationship('EventOccurrence')


class NpsBucket(db.Model):
    __tablename__ = 'nps_buckets'

    nps_bucket_id = db.Column(db.Integer, primary_key=True, autoincrement=False)
    name = db.Column(db.String(20), nullable=False)


class Survey(db.Model):
    __tablename__ = 'surveys'

    survey_id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.participant_id'), nullable=False)
    event_occurrence_id = db.Column(db.Integer, db.ForeignKey('event_occurrences.event_occurrence_id'), nullable=False)
    score_satisfaction = db.Column(db.Integer)
    score_usefulness = db.Column(db.Integer)
    score_instructor = db.Column(db.Integer)
    score_recommendation = db.Column(db.Integer)
    score_overall = db.Column(db.Integer)
    nps_bucket_id = db.Column(db.Integer, db.ForeignKey('nps_buckets.nps_bucket_id'))
    comments = db.Column(db.Text)
    submission_date = db.Column(db.Date, nullable=False)

    # One survey per participant per occurrence
    __table_args__ = (db.UniqueConstraint('participant_id', 'event_occurrence_id', name='unique_survey'),)

    participant = db.relationship('Participant')
    occurrence = db.relationship('EventOccurrence')
    nps_bucket = db.relationship('NpsBucket')

    def classify(self):
        self.nps_bucket_id = nps_bucket_for(self.score_recommendation)


class MilestoneType(db.Model):
    __tablename__ = 'milestone_types'

    milestone_type_id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)


class Milestone(db.Model):
    __tablename__ = 'milestones'

    milestone_id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(db.Integer, db.ForeignKey('participants.participant_id'), nullable=False)
    milestone_type_id = db.Column(db.Integer, db.ForeignKey('milestone_types.milestone_type_id'), nullable=False)
    milestone_date = db.Column(db.Date, nullable=False)

    participant = db.relationship('Participant')
    milestone_type = db.relationship('MilestoneType')


def find_or_create_participant(email, **fields):
    """
    Return the participant owning `email`, inserting one if none exists.

    The unique email constraint decides races between concurrent inserts: the
    loser's savepoint rolls back and it reads the winner's row instead.
    """
    email = normalize_email(email)
    if email is not None:
        participant = Participant.query.filter_by(email=email).first()
        if participant is not None:
            return participant
    participant = Participant(email=email, **fields)
    try:
        with db.session.begin_nested():
            db.session.add(participant)
    except IntegrityError:
        if email is None:
            raise
        participant = Participant.query.filter_by(email=email).one()
    return participant


def seed_lookups():
    """Insert the NPS bucket rows if they are missing."""
    for bucket_id, name in NPS_BUCKETS.items():
        if db.session.get(NpsBucket, bucket_id) is None:
            db.session.add(NpsBucket(nps_bucket_id=bucket_id, name=name))
    db.session.commit()
