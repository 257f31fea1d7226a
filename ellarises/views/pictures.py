"""
Profile picture upload and removal.

The target is the caller's own participant unless a manager names another
one. When the caller changes their own picture the session copy is refreshed
before redirecting so the navigation bar never shows a stale image.
"""
from flask import redirect, url_for, flash, abort

from ellarises import storage
from ellarises.app import app
from ellarises.auth import login_required, refresh_profile_picture
from ellarises.forms import ProfilePictureForm, ProfilePictureDeleteForm
from ellarises.models import db, Participant


def _target_participant(viewer, requested_id):
    if requested_id is not None and requested_id != viewer.participant_id:
        if not viewer.is_manager:
            abort(403)
        return db.get_or_404(Participant, requested_id)
    if viewer.participant_id is None:
        abort(400, 'Your account is not linked to a participant record.')
    return db.get_or_404(Participant, viewer.participant_id)


def _back(viewer, participant_id):
    """Managers return to the participant they edited; everyone else to the dashboard."""
    if viewer.is_manager and participant_id is not None and participant_id != viewer.participant_id:
        return redirect(url_for('participant_edit', participant_id=participant_id))
    return redirect(url_for('dashboard'))


def _set_picture(viewer, participant, url):
    participant.profile_picture_url = url
    db.session.commit()
    if participant.participant_id == viewer.participant_id:
        refresh_profile_picture(url)


@app.route('/profile-picture', methods=['POST'])
@login_required
def profile_picture_upload(viewer):
    form = ProfilePictureForm()
    if not form.validate_on_submit():
        flash('Choose a picture to upload.', 'danger')
        return _back(viewer, form.participant_id.data)
    participant = _target_participant(viewer, form.participant_id.data)
    # Storage first; the record only changes once the upload succeeded
    url = storage.upload_profile_picture(form.picture.data)
    _set_picture(viewer, participant, url)
    app.logger.info('%s set picture for participant %s', viewer.username, participant.participant_id)
    flash('Profile picture updated.', 'success')
    return _back(viewer, participant.participant_id)


@app.route('/profile-picture/delete', methods=['POST'])
@login_required
def profile_picture_delete(viewer):
    form = ProfilePictureDeleteForm()
    if not form.validate_on_submit():
        abort(400)
    participant = _target_participant(viewer, form.participant_id.data)
    _set_picture(viewer, participant, None)
    app.logger.info('%s removed picture of participant %s', viewer.username, participant.participant_id)
    flash('Profile picture removed.', 'success')
    return _back(viewer, participant.participant_id)
