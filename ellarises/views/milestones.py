from flask import render_template, redirect, url_for, flash, request

from ellarises.app import app
from ellarises.auth import login_required, manager_required
from ellarises.forms import MilestoneForm, participant_choices, milestone_type_choices
from ellarises.models import db, Milestone
from ellarises.search import milestone_listing, paginate


def _milestone_form(milestone=None):
    form = MilestoneForm(obj=milestone)
    form.participant_id.choices = participant_choices()
    form.milestone_type_id.choices = milestone_type_choices()
    return form


@app.route('/milestones')
@login_required
def milestones_list(viewer):
    q = request.args.get('q', '').strip()
    pagination = paginate(milestone_listing(viewer, q), request.args.get('page', 1, type=int))
    return render_template('milestones.html', milestones=pagination.items, pagination=pagination, q=q)


@app.route('/milestones/add', methods=['GET', 'POST'])
@manager_required
def milestone_add(viewer):
    form = _milestone_form()
    if request.method == 'GET' and request.args.get('participant_id', type=int):
        form.participant_id.data = request.args.get('participant_id', type=int)
    if form.validate_on_submit():
        milestone = Milestone()
        form.populate_obj(milestone)
        db.session.add(milestone)
        db.session.commit()
        app.logger.info('%s recorded milestone %s', viewer.username, milestone.milestone_id)
        flash('Milestone recorded.', 'success')
        return redirect(url_for('milestones_list'))
    return render_template('milestone_form.html', form=form, title='Add milestone')


@app.route('/milestones/edit/<int:milestone_id>', methods=['GET', 'POST'])
@manager_required
def milestone_edit(viewer, milestone_id):
    milestone = db.get_or_404(Milestone, milestone_id)
    form = _milestone_form(milestone)
    if form.validate_on_submit():
        form.populate_obj(milestone)
        db.session.commit()
        flash('Milestone updated.', 'success')
        return redirect(url_for('milestones_list'))
    return render_template('milestone_form.html', form=form, title='Edit milestone', milestone=milestone)


@app.route('/milestones/delete/<int:milestone_id>', methods=['POST'])
@manager_required
def milestone_delete(viewer, milestone_id):
    milestone = db.get_or_404(Milestone, milestone_id)
    db.session.delete(milestone)
    db.session.commit()
    app.logger.info('%s deleted milestone %s', viewer.username, milestone_id)
    flash('Milestone deleted.', 'success')
    return redirect(url_for('milestones_list'))
