from flask import render_template, redirect, url_for, flash, request, abort
from sqlalchemy.exc import IntegrityError

from ellarises.app import app
from ellarises.auth import login_required, manager_required
from ellarises.forms import SurveyForm, participant_choices, occurrence_choices
from ellarises.models import db, Survey, Participant
from ellarises.search import survey_listing, paginate


def survey_exists(participant_id, event_occurrence_id):
    return Survey.query.filter_by(participant_id=participant_id,
                                  event_occurrence_id=event_occurrence_id).first() is not None


@app.route('/surveys')
@login_required
def surveys_list(viewer):
    q = request.args.get('q', '').strip()
    pagination = paginate(survey_listing(viewer, q), request.args.get('page', 1, type=int))
    return render_template('surveys.html', surveys=pagination.items, pagination=pagination, q=q)


@app.route('/surveys/add', methods=['GET', 'POST'])
@login_required
def survey_add(viewer):
    """Managers file surveys for anyone; everyone else for their own enrollments."""
    form = SurveyForm()
    if viewer.is_manager:
        form.participant_id.choices = participant_choices()
        form.event_occurrence_id.choices = occurrence_choices()
    else:
        if viewer.participant_id is None:
            abort(403)
        participant = db.get_or_404(Participant, viewer.participant_id)
        form.participant_id.choices = [(participant.participant_id, participant.full_name)]
        form.participant_id.data = participant.participant_id
        form.event_occurrence_id.choices = occurrence_choices(participant.participant_id)
    if form.validate_on_submit():
        if survey_exists(form.participant_id.data, form.event_occurrence_id.data):
            # Already answered; a second submission changes nothing
            return redirect(url_for('surveys_list'))
        survey = Survey()
        form.populate_obj(survey)
        survey.classify()
        db.session.add(survey)
        try:
            db.session.commit()
        except IntegrityError:
            # An identical submission got there first
            db.session.rollback()
            return redirect(url_for('surveys_list'))
        app.logger.info('Survey %s submitted by %s', survey.survey_id, viewer.username)
        flash('Thank you for your feedback.', 'success')
        return redirect(url_for('surveys_list'))
    return render_template('survey_form.html', form=form, title='Add survey')


@app.route('/surveys/edit/<int:survey_id>', methods=['GET', 'POST'])
@manager_required
def survey_edit(viewer, survey_id):
    survey = db.get_or_404(Survey, survey_id)
    form = SurveyForm(obj=survey)
    form.participant_id.choices = participant_choices()
    form.event_occurrence_id.choices = occurrence_choices()
    if form.validate_on_submit():
        if ((form.participant_id.data, form.event_occurrence_id.data)
                != (survey.participant_id, survey.event_occurrence_id)
                and survey_exists(form.participant_id.data, form.event_occurrence_id.data)):
            flash('That participant already has a survey for that event.', 'danger')
            return render_template('survey_form.html', form=form, title='Edit survey', survey=survey)
        form.populate_obj(survey)
        survey.classify()
        db.session.commit()
        flash('Survey updated.', 'success')
        return redirect(url_for('surveys_list'))
    return render_template('survey_form.html', form=form, title='Edit survey', survey=survey)


@app.route('/surveys/delete/<int:survey_id>', methods=['POST'])
@manager_required
def survey_delete(viewer, survey_id):
    survey = db.get_or_404(Survey, survey_id)
    db.session.delete(survey)
    db.session.commit()
    app.logger.info('%s deleted survey %s', viewer.username, survey_id)
    flash('Survey deleted.', 'success')
    return redirect(url_for('surveys_list'))
