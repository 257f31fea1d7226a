from datetime import date

from flask import render_template, redirect, url_for, flash, request
from flask_login import current_user

from ellarises.app import app
from ellarises.auth import login_required, manager_required
from ellarises.forms import DonationForm, PublicDonationForm, participant_choices
from ellarises.models import db, Donation, Participant, find_or_create_participant
from ellarises.search import donation_listing, paginate


@app.route('/donations')
@login_required
def donations_list(viewer):
    q = request.args.get('q', '').strip()
    pagination = paginate(donation_listing(viewer, q), request.args.get('page', 1, type=int))
    return render_template('donations.html', donations=pagination.items, pagination=pagination, q=q)


@app.route('/donations/add', methods=['GET', 'POST'])
@manager_required
def donation_add(viewer):
    form = DonationForm()
    form.participant_id.choices = participant_choices()
    if request.method == 'GET' and request.args.get('participant_id', type=int):
        form.participant_id.data = request.args.get('participant_id', type=int)
    if form.validate_on_submit():
        donation = Donation()
        form.populate_obj(donation)
        db.session.add(donation)
        db.session.commit()
        app.logger.info('%s recorded donation %s', viewer.username, donation.donation_id)
        flash('Donation recorded.', 'success')
        return redirect(url_for('donations_list'))
    return render_template('donation_form.html', form=form, title='Add donation')


@app.route('/donations/edit/<int:donation_id>', methods=['GET', 'POST'])
@manager_required
def donation_edit(viewer, donation_id):
    donation = db.get_or_404(Donation, donation_id)
    form = DonationForm(obj=donation)
    form.participant_id.choices = participant_choices()
    if form.validate_on_submit():
        form.populate_obj(donation)
        db.session.commit()
        flash('Donation updated.', 'success')
        return redirect(url_for('donations_list'))
    return render_template('donation_form.html', form=form, title='Edit donation', donation=donation)


@app.route('/donations/delete/<int:donation_id>', methods=['POST'])
@manager_required
def donation_delete(viewer, donation_id):
    donation = db.get_or_404(Donation, donation_id)
    db.session.delete(donation)
    db.session.commit()
    app.logger.info('%s deleted donation %s', viewer.username, donation_id)
    flash('Donation deleted.', 'success')
    return redirect(url_for('donations_list'))


@app.route('/donate', methods=['GET', 'POST'])
def donate():
    """Public donation form; everyone gets the same form, signed-in visitors prefilled."""
    form = PublicDonationForm()
    if request.method == 'GET' and current_user.is_authenticated and current_user.participant_id:
        participant = db.session.get(Participant, current_user.participant_id)
        if participant is not None:
            form.first_name.data = participant.first_name
            form.last_name.data = participant.last_name
            form.email.data = participant.email
    if form.validate_on_submit():
        participant = find_or_create_participant(
            form.email.data,
            first_name=form.first_name.data.strip(),
            last_name=form.last_name.data.strip(),
        )
        donation = Donation(participant=participant, donation_amount=form.donation_amount.data,
                            donation_date=date.today())
        db.session.add(donation)
        db.session.commit()
        app.logger.info('Public donation %s from participant %s', donation.donation_id, participant.participant_id)
        if current_user.is_authenticated:
            flash('Thank you for your donation!', 'success')
            return redirect(url_for('donations_list'))
        return render_template('donate_thanks.html', donation=donation, first_name=form.first_name.data.strip())
    return render_template('donate.html', form=form)
