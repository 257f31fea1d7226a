from flask import render_template, redirect, url_for, flash, request, abort

from ellarises.app import app
from ellarises.auth import login_required, manager_required
from ellarises.cascade import delete_participant
from ellarises.forms import ParticipantForm, PARTICIPANT_FIELDS
from ellarises.models import db, Participant, normalize_email
from ellarises.search import participant_listing, paginate


def _apply(form, participant):
    """Copy the whitelisted participant fields from the form; blanks become NULL."""
    for name in PARTICIPANT_FIELDS:
        value = form[name].data
        if isinstance(value, str):
            value = value.strip() or None
        setattr(participant, name, value)
    participant.email = normalize_email(participant.email)


def _email_taken(email, participant_id=None):
    email = normalize_email(email)
    if email is None:
        return False
    existing = Participant.query.filter_by(email=email).first()
    return existing is not None and existing.participant_id != participant_id


@app.route('/participants')
@login_required
def participants_list(viewer):
    q = request.args.get('q', '').strip()
    pagination = paginate(participant_listing(viewer, q), request.args.get('page', 1, type=int))
    return render_template('participants.html', participants=pagination.items, pagination=pagination, q=q)


@app.route('/participants/add', methods=['GET', 'POST'])
@manager_required
def participant_add(viewer):
    form = ParticipantForm()
    if request.method == 'GET':
        form.return_to.data = request.args.get('return_to', '')
    if form.validate_on_submit():
        if _email_taken(form.email.data):
            form.email.errors.append('Another participant already uses that email.')
            return render_template('participant_form.html', form=form, title='Add participant')
        participant = Participant()
        _apply(form, participant)
        db.session.add(participant)
        db.session.commit()
        app.logger.info('%s added participant %s', viewer.username, participant.participant_id)
        if form.return_to.data == 'donation':
            # Mid-way through recording a donation for someone new
            return redirect(url_for('donation_add', participant_id=participant.participant_id))
        flash('Participant added.', 'success')
        return redirect(url_for('participants_list'))
    return render_template('participant_form.html', form=form, title='Add participant')


@app.route('/participants/edit/<int:participant_id>', methods=['GET', 'POST'])
@manager_required
def participant_edit(viewer, participant_id):
    participant = db.get_or_404(Participant, participant_id)
    form = ParticipantForm(obj=participant)
    if form.validate_on_submit():
        if _email_taken(form.email.data, participant_id):
            form.email.errors.append('Another participant already uses that email.')
            return render_template('participant_form.html', form=form, title='Edit participant')
        _apply(form, participant)
        db.session.commit()
        flash('Participant updated.', 'success')
        return redirect(url_for('participants_list'))
    return render_template('participant_form.html', form=form, title='Edit participant', participant=participant)


@app.route('/participants/delete/<int:participant_id>', methods=['POST'])
@manager_required
def participant_delete(viewer, participant_id):
    db.get_or_404(Participant, participant_id)
    if participant_id == viewer.participant_id:
        abort(400, 'You cannot delete the participant record linked to your own account.')
    delete_participant(participant_id)
    app.logger.info('%s deleted participant %s', viewer.username, participant_id)
    flash('Participant and all linked records deleted.', 'success')
    return redirect(url_for('participants_list'))
