"""
Public pages, login/logout/signup and the dashboard.
"""
from datetime import datetime

from flask import render_template, redirect, url_for, flash
from flask_login import current_user
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ellarises.app import app
from ellarises.auth import start_session, end_session, login_required
from ellarises.forms import LoginForm, SignupForm
from ellarises.models import db, User, Participant, Donation, EventOccurrence, ROLE_USER, normalize_email

EMAIL_ON_FILE = 'That email is already on file. Please ask a staff member to link it to an account.'

TEAPOT_MESSAGE = ("418: I'm a little teapot, short and stout. "
                  "This server refuses to brew coffee because it is, permanently, a teapot.")


def greeting_for(hour):
    if hour > 17:
        return 'Good Evening'
    if hour > 12:
        return 'Good Afternoon'
    return 'Good Morning'


@app.route('/')
def index():
    return render_template('landing.html')


@app.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))
    form = LoginForm()
    if form.validate_on_submit():
        user = User.query.filter_by(username=form.username.data).first()
        if user is not None and user.check_password(form.password.data):
            start_session(user)
            app.logger.info('User %s logged in', user.username)
            return redirect(url_for('dashboard'))
        flash('Invalid username or password.', 'danger')
    return render_template('login.html', form=form)


@app.route('/logout')
def logout():
    if current_user.is_authenticated:
        app.logger.info('User %s logged out', current_user.username)
    end_session()
    return redirect(url_for('index'))


@app.route('/signup', methods=['GET', 'POST'])
def signup():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))
    form = SignupForm()
    if form.validate_on_submit():
        email = normalize_email(form.email.data)
        # An email already on file belongs to someone; only a manager may link it to a login
        if Participant.query.filter_by(email=email).first() is not None:
            form.email.errors.append(EMAIL_ON_FILE)
            return render_template('signup.html', form=form)
        participant = Participant(first_name=form.first_name.data.strip(),
                                  last_name=form.last_name.data.strip(), email=email)
        user = User(username=form.username.data, role=ROLE_USER, participant=participant)
        user.set_password(form.password.data)
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            form.email.errors.append(EMAIL_ON_FILE)
            return render_template('signup.html', form=form)
        app.logger.info('New account %s for participant %s', user.username, participant.participant_id)
        start_session(user)
        flash('Welcome! Your account has been created.', 'success')
        return redirect(url_for('dashboard'))
    return render_template('signup.html', form=form)


@app.route('/dashboard')
@login_required
def dashboard(viewer):
    stats = {
        'participants': db.session.scalar(select(func.count(Participant.participant_id))),
        'donations': db.session.scalar(select(func.count(Donation.donation_id))),
        'events': db.session.scalar(select(func.count(EventOccurrence.event_occurrence_id))),
    }
    return render_template('dashboard.html', greeting=greeting_for(datetime.now().hour), stats=stats)


@app.route('/teapot')
def teapot():
    return TEAPOT_MESSAGE, 418, {'Content-Type': 'text/plain; charset=utf-8'}
