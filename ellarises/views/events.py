from datetime import datetime

from flask import render_template, redirect, url_for, flash, request
from sqlalchemy import func, select

from ellarises.app import app
from ellarises.auth import login_required, manager_required
from ellarises.forms import EventForm, template_choices, location_choices
from ellarises.models import db, EventOccurrence, Registration
from ellarises.search import event_listing, paginate


def _event_form(occurrence=None):
    form = EventForm(obj=occurrence)
    form.event_template_id.choices = template_choices()
    form.location_id.choices = location_choices()
    return form


def _open_for_registration(viewer, limit=20):
    """Upcoming occurrences the viewer could still sign up for."""
    if viewer.is_manager or viewer.participant_id is None:
        return []
    enrolled = select(Registration.event_occurrence_id).where(Registration.participant_id == viewer.participant_id)
    stmt = (select(EventOccurrence)
            .where(EventOccurrence.start_time >= datetime.now())
            .where(EventOccurrence.event_occurrence_id.not_in(enrolled))
            .order_by(EventOccurrence.start_time)
            .limit(limit))
    return db.session.scalars(stmt).all()


@app.route('/events')
@login_required
def events_list(viewer):
    q = request.args.get('q', '').strip()
    pagination = paginate(event_listing(viewer, q), request.args.get('page', 1, type=int))
    return render_template('events.html', events=pagination.items, pagination=pagination, q=q,
                           upcoming=_open_for_registration(viewer))


@app.route('/events/add', methods=['GET', 'POST'])
@manager_required
def event_add(viewer):
    form = _event_form()
    if form.validate_on_submit():
        occurrence = EventOccurrence()
        form.populate_obj(occurrence)
        db.session.add(occurrence)
        db.session.commit()
        app.logger.info('%s scheduled event occurrence %s', viewer.username, occurrence.event_occurrence_id)
        flash('Event scheduled.', 'success')
        return redirect(url_for('events_list'))
    return render_template('event_form.html', form=form, title='Schedule event')


@app.route('/events/edit/<int:event_occurrence_id>', methods=['GET', 'POST'])
@manager_required
def event_edit(viewer, event_occurrence_id):
    occurrence = db.get_or_404(EventOccurrence, event_occurrence_id)
    form = _event_form(occurrence)
    if form.validate_on_submit():
        form.populate_obj(occurrence)
        db.session.commit()
        flash('Event updated.', 'success')
        return redirect(url_for('events_list'))
    return render_template('event_form.html', form=form, title='Edit event', occurrence=occurrence)


@app.route('/events/delete/<int:event_occurrence_id>', methods=['POST'])
@manager_required
def event_delete(viewer, event_occurrence_id):
    occurrence = db.get_or_404(EventOccurrence, event_occurrence_id)
    db.session.delete(occurrence)
    db.session.commit()
    app.logger.info('%s deleted event occurrence %s', viewer.username, event_occurrence_id)
    flash('Event deleted.', 'success')
    return redirect(url_for('events_list'))


@app.route('/events/<int:event_occurrence_id>/register', methods=['POST'])
@login_required
def event_register(viewer, event_occurrence_id):
    occurrence = db.get_or_404(EventOccurrence, event_occurrence_id)
    if viewer.participant_id is None:
        flash('Your account is not linked to a participant record.', 'danger')
        return redirect(url_for('events_list'))

    existing = Registration.query.filter_by(participant_id=viewer.participant_id,
                                            event_occurrence_id=occurrence.event_occurrence_id).first()
    if existing:
        flash('You are already registered for this event.', 'warning')
        return redirect(url_for('events_list'))

    if occurrence.capacity:
        registered = db.session.scalar(
            select(func.count(Registration.registration_id))
            .where(Registration.event_occurrence_id == occurrence.event_occurrence_id))
        if registered >= occurrence.capacity:
            flash('This event is full.', 'danger')
            return redirect(url_for('events_list'))

    db.session.add(Registration(participant_id=viewer.participant_id,
                                event_occurrence_id=occurrence.event_occurrence_id))
    db.session.commit()
    app.logger.info('Participant %s registered for occurrence %s', viewer.participant_id, event_occurrence_id)
    flash('You are registered.', 'success')
    return redirect(url_for('events_list'))
