"""
Participant removal together with every row that references it.

The dependents are data: adding a table that points at participants means
adding an entry to PARTICIPANT_DEPENDENTS.
"""
import logging

from sqlalchemy import delete

from ellarises.models import db, Donation, Survey, Registration, Milestone, User, Participant

logger = logging.getLogger(__name__)

PARTICIPANT_DEPENDENTS = (
    (Donation, 'participant_id'),
    (Survey, 'participant_id'),
    (Registration, 'participant_id'),
    (Milestone, 'participant_id'),
    (User, 'participant_id'),
)


def delete_participant(participant_id, dependents=PARTICIPANT_DEPENDENTS):
    """
    Delete a participant and its dependent rows in a single transaction.

    Returns a dict of deleted row counts keyed by table name. Any error rolls
    the whole unit back and is re-raised.
    """
    counts = {}
    try:
        for model, column in dependents:
            result = db.session.execute(
                delete(model).where(getattr(model, column) == participant_id))
            counts[model.__tablename__] = result.rowcount
        result = db.session.execute(
            delete(Participant).where(Participant.participant_id == participant_id))
        counts[Participant.__tablename__] = result.rowcount
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Cascade delete of participant %s rolled back', participant_id)
        raise
    logger.info('Deleted participant %s: %s', participant_id, counts)
    return counts
