import secrets
import string

from flask import render_template, redirect, url_for, flash, request, abort

from ellarises.app import app
from ellarises.auth import login_required, manager_required
from ellarises.forms import UserForm, participant_choices
from ellarises.models import db, User
from ellarises.search import user_listing, paginate


def generate_password(length=12):
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def _user_form(user=None):
    form = UserForm(obj=user)
    form.participant_id.choices = [('', '(none)')] + participant_choices()
    return form


@app.route('/users')
@login_required
def users_list(viewer):
    q = request.args.get('q', '').strip()
    pagination = paginate(user_listing(viewer, q), request.args.get('page', 1, type=int))
    return render_template('users.html', users=pagination.items, pagination=pagination, q=q)


@app.route('/users/add', methods=['GET', 'POST'])
@manager_required
def user_add(viewer):
    form = _user_form()
    if form.validate_on_submit():
        user = User(username=form.username.data, role=form.role.data, participant_id=form.participant_id.data)
        # Blank password field: make one up and show it once
        password = form.password.data or generate_password()
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        app.logger.info('%s created user %s', viewer.username, user.username)
        if form.password.data:
            flash('User %s created.' % user.username, 'success')
        else:
            flash('User %s created. Password: %s' % (user.username, password), 'success')
        return redirect(url_for('users_list'))
    return render_template('user_form.html', form=form, title='Add user')


@app.route('/users/edit/<int:user_id>', methods=['GET', 'POST'])
@manager_required
def user_edit(viewer, user_id):
    user = db.get_or_404(User, user_id)
    form = _user_form(user)
    form.editing_user_id = user.user_id
    if form.validate_on_submit():
        user.username = form.username.data
        user.role = form.role.data
        user.participant_id = form.participant_id.data
        if form.password.data:
            user.set_password(form.password.data)
        db.session.commit()
        flash('User updated.', 'success')
        return redirect(url_for('users_list'))
    return render_template('user_form.html', form=form, title='Edit user', user=user)


@app.route('/users/delete/<int:user_id>', methods=['POST'])
@manager_required
def user_delete(viewer, user_id):
    user = db.get_or_404(User, user_id)
    if user.user_id == viewer.user_id:
        app.logger.warning('%s tried to delete their own account', viewer.username)
        abort(400, 'You cannot delete your own account.')
    db.session.delete(user)
    db.session.commit()
    app.logger.info('%s deleted user %s', viewer.username, user.username)
    flash('User deleted.', 'success')
    return redirect(url_for('users_list'))
