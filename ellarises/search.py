"""
Listing queries: caller scoping, free-text search and pagination.

Every listing is a single SELECT; db.paginate derives both the row count and
the page of rows from that same statement, so the two always agree.
"""
import sqlite3
import unicodedata
from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import String, cast, event, false, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.expression import FunctionElement

from ellarises.models import (db, Participant, Donation, Survey, EventOccurrence, EventTemplate,
                              Location, Registration, Milestone, MilestoneType, User)

DATE_FORMATS = ('%Y-%m-%d', '%m/%d/%Y')


def fold_text(value):
    """Lower-case and strip diacritics, e.g. 'Pérez' -> 'perez'."""
    if value is None:
        return None
    decomposed = unicodedata.normalize('NFKD', str(value).lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


# Latin-1, Latin Extended-A/B, Greek, Cyrillic, Latin Extended Additional
FOLDED_RANGES = ((0x00C0, 0x024F), (0x0370, 0x04FF), (0x1E00, 0x1EFF))


def _fold_tables(ranges=FOLDED_RANGES):
    """
    The fold_text mapping of every lower-case letter in `ranges`, split for SQL.

    Returns (accented, plain, replacements): two equal-length strings for
    translate() and the (char, text) pairs that fold to more than one letter.
    lower() runs first in SQL, so upper-case letters need no entry.
    """
    accented, plain, replacements = [], [], []
    for start, end in ranges:
        for code in range(start, end + 1):
            ch = chr(code)
            if ch != ch.lower():
                continue
            folded = fold_text(ch)
            if folded == ch:
                continue
            if len(folded) == 1:
                accented.append(ch)
                plain.append(folded)
            else:
                replacements.append((ch, folded))
    return ''.join(accented), ''.join(plain), tuple(replacements)


_ACCENTED, _PLAIN, _REPLACEMENTS = _fold_tables()


def _sql_string(value):
    return "'%s'" % value.replace("'", "''")


class fold(FunctionElement):
    """SQL counterpart of fold_text."""
    type = String()
    name = 'fold'
    inherit_cache = True


@compiles(fold)
def _compile_fold(element, compiler, **kw):
    return 'lower(%s)' % compiler.process(element.clauses, **kw)


@compiles(fold, 'sqlite')
def _compile_fold_sqlite(element, compiler, **kw):
    return 'fold(%s)' % compiler.process(element.clauses, **kw)


@compiles(fold, 'postgresql')
def _compile_fold_postgresql(element, compiler, **kw):
    sql = 'lower(%s)' % compiler.process(element.clauses, **kw)
    for ch, text in _REPLACEMENTS:
        sql = 'replace(%s, %s, %s)' % (sql, _sql_string(ch), _sql_string(text))
    return 'translate(%s, %s, %s)' % (sql, _sql_string(_ACCENTED), _sql_string(_PLAIN))


@event.listens_for(Engine, 'connect')
def _register_sqlite_fold(dbapi_connection, connection_record):
    if isinstance(dbapi_connection, sqlite3.Connection):
        dbapi_connection.create_function('fold', 1, fold_text, deterministic=True)


def full_name(model=Participant):
    return model.first_name + ' ' + model.last_name


def parse_amount(term):
    try:
        return Decimal(term.replace('$', '').replace(',', ''))
    except InvalidOperation:
        return None


def parse_date(term):
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(term, fmt).date()
        except ValueError:
            continue
    return None


def text_search(term, columns, amount_column=None, date_columns=()):
    """
    OR together substring matches of `term` over `columns`.

    Numeric-looking terms also match `amount_column` exactly, and terms that
    parse as a date (ISO or US style) match that day in `date_columns`.
    Returns None for a blank term.
    """
    term = (term or '').strip()
    if not term:
        return None
    # Wildcards typed by the user are matched literally
    folded = fold_text(term)
    clauses = [fold(column).contains(folded, autoescape=True) for column in columns]
    clauses.extend(fold(cast(column, String)).contains(folded, autoescape=True) for column in date_columns)
    if amount_column is not None:
        clauses.append(cast(amount_column, String).contains(term, autoescape=True))
        amount = parse_amount(term)
        if amount is not None:
            clauses.append(amount_column == amount)
    when = parse_date(term)
    if when is not None:
        clauses.extend(cast(column, String).contains(when.isoformat()) for column in date_columns)
    return or_(*clauses)


def owned_by(viewer, column):
    """Restrict `column` to the viewer's own participant unless they are a manager."""
    if viewer.is_manager:
        return None
    if viewer.participant_id is None:
        return false()
    return column == viewer.participant_id


def _narrow(stmt, *criteria):
    for criterion in criteria:
        if criterion is not None:
            stmt = stmt.where(criterion)
    return stmt


def participant_listing(viewer, term=None):
    stmt = select(Participant).order_by(Participant.participant_id)
    return _narrow(
        stmt,
        owned_by(viewer, Participant.participant_id),
        text_search(term, [Participant.first_name, Participant.last_name, full_name(),
                           Participant.email, Participant.city]),
    )


def donation_listing(viewer, term=None):
    stmt = (select(Donation)
            .join(Participant, Donation.participant_id == Participant.participant_id)
            .order_by(Donation.donation_date.desc(), Donation.donation_id.desc()))
    return _narrow(
        stmt,
        owned_by(viewer, Donation.participant_id),
        text_search(term, [Participant.first_name, Participant.last_name, full_name(),
                           Participant.email],
                    amount_column=Donation.donation_amount,
                    date_columns=[Donation.donation_date]),
    )


def survey_listing(viewer, term=None):
    stmt = (select(Survey)
            .join(Participant, Survey.participant_id == Participant.participant_id)
            .join(EventOccurrence, Survey.event_occurrence_id == EventOccurrence.event_occurrence_id)
            .join(EventTemplate, EventOccurrence.event_template_id == EventTemplate.event_template_id)
            .order_by(Survey.submission_date.desc(), Survey.survey_id.desc()))
    return _narrow(
        stmt,
        owned_by(viewer, Survey.participant_id),
        text_search(term, [Participant.first_name, Participant.last_name, full_name(),
                           EventTemplate.name, Survey.comments],
                    date_columns=[Survey.submission_date]),
    )


def event_listing(viewer, term=None):
    stmt = (select(EventOccurrence)
            .join(EventTemplate, EventOccurrence.event_template_id == EventTemplate.event_template_id)
            .join(Location, EventOccurrence.location_id == Location.location_id)
            .order_by(EventOccurrence.start_time, EventOccurrence.event_occurrence_id))
    if not viewer.is_manager:
        # Non-managers see the occurrences they are enrolled in
        stmt = stmt.join(Registration,
                         Registration.event_occurrence_id == EventOccurrence.event_occurrence_id)
    return _narrow(
        stmt,
        owned_by(viewer, Registration.participant_id),
        text_search(term, [EventTemplate.name, EventTemplate.description, Location.name],
                    date_columns=[EventOccurrence.start_time]),
    )


def milestone_listing(viewer, term=None):
    stmt = (select(Milestone)
            .join(Participant, Milestone.participant_id == Participant.participant_id)
            .join(MilestoneType, Milestone.milestone_type_id == MilestoneType.milestone_type_id)
            .order_by(Milestone.milestone_date.desc(), Milestone.milestone_id.desc()))
    return _narrow(
        stmt,
        owned_by(viewer, Milestone.participant_id),
        text_search(term, [Participant.first_name, Participant.last_name, full_name(),
                           MilestoneType.title],
                    date_columns=[Milestone.milestone_date]),
    )


def user_listing(viewer, term=None):
    stmt = (select(User)
            .outerjoin(Participant, User.participant_id == Participant.participant_id)
            .order_by(User.user_id))
    scope = None if viewer.is_manager else User.user_id == viewer.user_id
    return _narrow(
        stmt,
        scope,
        text_search(term, [User.username, User.role, Participant.first_name,
                           Participant.last_name, full_name()]),
    )


def paginate(stmt, page):
    """One page of `stmt`; page numbers start at 1."""
    return db.paginate(stmt, page=max(page or 1, 1), per_page=current_app.config['PAGE_SIZE'],
                       error_out=False)
