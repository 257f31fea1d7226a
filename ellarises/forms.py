from datetime import date

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import (StringField, PasswordField, SelectField, TextAreaField, IntegerField, DateField,
                     DateTimeField, DecimalField, HiddenField)
from wtforms.validators import DataRequired, Optional, Length, NumberRange, ValidationError
from sqlalchemy import select

from ellarises.models import (db, User, Participant, EventOccurrence, EventTemplate, Location,
                              MilestoneType, Registration, ROLES)

SCORE_RANGE = NumberRange(min=1, max=5)


def optional_int(value):
    if value in (None, '', 'None'):
        return None
    return int(value)


def participant_choices():
    participants = db.session.scalars(
        select(Participant).order_by(Participant.last_name, Participant.first_name)).all()
    return [(p.participant_id, '%s (%s)' % (p.full_name, p.email or 'no email')) for p in participants]


def occurrence_choices(participant_id=None):
    """Occurrences to pick from; limited to enrollments when a participant is given."""
    stmt = select(EventOccurrence).order_by(EventOccurrence.start_time)
    if participant_id is not None:
        stmt = (stmt.join(Registration, Registration.event_occurrence_id == EventOccurrence.event_occurrence_id)
                .where(Registration.participant_id == participant_id))
    return [(o.event_occurrence_id, '%s, %s' % (o.name, o.start_time.strftime('%Y-%m-%d %H:%M')))
            for o in db.session.scalars(stmt)]


def template_choices():
    templates = db.session.scalars(select(EventTemplate).order_by(EventTemplate.name))
    return [(t.event_template_id, t.name) for t in templates]


def location_choices():
    locations = db.session.scalars(select(Location).order_by(Location.name))
    return [(l.location_id, l.name) for l in locations]


def milestone_type_choices():
    types = db.session.scalars(select(MilestoneType).order_by(MilestoneType.title))
    return [(t.milestone_type_id, t.title) for t in types]


class LoginForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class SignupForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired(), Length(min=3, max=80)])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=8)])
    first_name = StringField('First name', validators=[DataRequired(), Length(max=100)])
    last_name = StringField('Last name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Length(max=255)])

    def validate_username(self, field):
        if User.query.filter_by(username=field.data).first():
            raise ValidationError('That username is already taken.')


class ParticipantForm(FlaskForm):
    first_name = StringField('First name', validators=[Optional(), Length(max=100)])
    last_name = StringField('Last name', validators=[Optional(), Length(max=100)])
    email = StringField('Email', validators=[Optional(), Length(max=255)])
    phone = StringField('Phone', validators=[Optional(), Length(max=40)])
    dob = DateField('Date of birth', validators=[Optional()])
    city = StringField('City', validators=[Optional(), Length(max=100)])
    state = StringField('State', validators=[Optional(), Length(max=50)])
    zip_code = StringField('ZIP code', validators=[Optional(), Length(max=20)])
    school_or_employer = StringField('School or employer', validators=[Optional(), Length(max=200)])
    # 'donation' sends the manager back to the donation form with the new participant
    return_to = HiddenField()


# Fields a participant edit is allowed to change
PARTICIPANT_FIELDS = ('first_name', 'last_name', 'email', 'phone', 'dob', 'city', 'state',
                      'zip_code', 'school_or_employer')


class UserForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired(), Length(min=3, max=80)])
    password = PasswordField('Password (leave blank to generate one)', validators=[Optional(), Length(min=8)])
    role = SelectField('Role', choices=[(role, role.title()) for role in ROLES], validators=[DataRequired()])
    participant_id = SelectField('Participant', coerce=optional_int, validate_choice=False)

    # Set by the edit view so the user's own name does not count as taken
    editing_user_id = None

    def validate_username(self, field):
        existing = User.query.filter_by(username=field.data).first()
        if existing is not None and existing.user_id != self.editing_user_id:
            raise ValidationError('That username is already taken.')

    def validate_participant_id(self, field):
        if field.data is not None and db.session.get(Participant, field.data) is None:
            raise ValidationError('Unknown participant.')


class DonationForm(FlaskForm):
    participant_id = SelectField('Participant', coerce=int)
    donation_amount = DecimalField('Amount', places=2, validators=[DataRequired(), NumberRange(min=0.01)])
    donation_date = DateField('Date', default=date.today, validators=[DataRequired()])


class PublicDonationForm(FlaskForm):
    first_name = StringField('First name', validators=[DataRequired(), Length(max=100)])
    last_name = StringField('Last name', validators=[DataRequired(), Length(max=100)])
    email = StringField('Email', validators=[DataRequired(), Length(max=255)])
    donation_amount = DecimalField('Amount', places=2, validators=[DataRequired(), NumberRange(min=0.01)])


class SurveyForm(FlaskForm):
    participant_id = SelectField('Participant', coerce=int)
    event_occurrence_id = SelectField('Event', coerce=int)
    score_satisfaction = IntegerField('Satisfaction', validators=[Optional(), SCORE_RANGE])
    score_usefulness = IntegerField('Usefulness', validators=[Optional(), SCORE_RANGE])
    score_instructor = IntegerField('Instructor', validators=[Optional(), SCORE_RANGE])
    score_recommendation = IntegerField('Would recommend', validators=[Optional(), SCORE_RANGE])
    score_overall = IntegerField('Overall', validators=[Optional(), SCORE_RANGE])
    comments = TextAreaField('Comments', validators=[Optional()])
    submission_date = DateField('Submitted', default=date.today, validators=[DataRequired()])


class EventForm(FlaskForm):
    event_template_id = SelectField('Event', coerce=int)
    location_id = SelectField('Location', coerce=int)
    start_time = DateTimeField('Starts', format='%Y-%m-%dT%H:%M', validators=[DataRequired()])  # datetime-local input
    end_time = DateTimeField('Ends', format='%Y-%m-%dT%H:%M', validators=[Optional()])
    capacity = IntegerField('Capacity (0 - no limit)', default=0, validators=[Optional(), NumberRange(min=0)])


class MilestoneForm(FlaskForm):
    participant_id = SelectField('Participant', coerce=int)
    milestone_type_id = SelectField('Milestone', coerce=int)
    milestone_date = DateField('Date', default=date.today, validators=[DataRequired()])


class ProfilePictureForm(FlaskForm):
    picture = FileField('Picture', validators=[FileRequired()])
    participant_id = IntegerField(validators=[Optional()])  # managers may pick another participant


class ProfilePictureDeleteForm(FlaskForm):
    participant_id = IntegerField(validators=[Optional()])

