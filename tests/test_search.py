from datetime import date

import pytest
from sqlalchemy.dialects import postgresql

from ellarises.auth import SessionUser
from ellarises.models import ROLE_MANAGER, ROLE_USER, db, Participant
from ellarises.search import (_ACCENTED, _PLAIN, _REPLACEMENTS, fold_text, text_search, parse_amount,
                              parse_date, paginate, participant_listing,
                              donation_listing, survey_listing, milestone_listing, event_listing,
                              user_listing)


def _viewer(participant_id=None, role=ROLE_USER, user_id=1, username='someone'):
    return SessionUser(user_id, username, role, participant_id=participant_id)


def _ids(app, builder, viewer, term=None, page=1):
    with app.app_context():
        pagination = paginate(builder(viewer, term), page)
        return [row.participant_id for row in pagination.items]


def test_fold_text_strips_case_and_accents():
    assert fold_text('PÉREZ') == 'perez'
    assert fold_text('Ñúñez García') == 'nunez garcia'
    assert fold_text(None) is None


def test_parse_helpers():
    assert str(parse_amount('$1,250.50')) == '1250.50'
    assert parse_amount('ana') is None
    assert parse_date('2024-03-15') == date(2024, 3, 15)
    assert parse_date('03/15/2024') == date(2024, 3, 15)
    assert parse_date('15th of March') is None


@pytest.mark.parametrize('term', ['ana', 'PÉREZ', 'perez', 'ana per', 'Ana Pérez'])
def test_participant_search_ignores_case_and_accents(app, factory, term):
    wanted = factory.participant('Ana', 'Pérez')
    factory.participant('Bo', 'Chen')

    assert _ids(app, participant_listing, _viewer(role=ROLE_MANAGER), term) == [wanted]


def test_blank_term_lists_everything(app, factory):
    first = factory.participant('Ana', 'Pérez')
    second = factory.participant('Bo', 'Chen')

    assert _ids(app, participant_listing, _viewer(role=ROLE_MANAGER), '   ') == [first, second]


def test_pagination_uses_fixed_page_size(app):
    with app.app_context():
        db.session.add_all(Participant(first_name='P%03d' % n, last_name='Row') for n in range(250))
        db.session.commit()
        viewer = _viewer(role=ROLE_MANAGER)

        first = paginate(participant_listing(viewer), 1)
        last = paginate(participant_listing(viewer), 3)
        beyond = paginate(participant_listing(viewer), 4)

        assert len(first.items) == 100
        assert len(last.items) == 50
        assert first.total == last.total == 250
        assert first.pages == 3
        assert beyond.items == []


def test_page_numbers_below_one_mean_the_first_page(app, factory):
    wanted = factory.participant()
    assert _ids(app, participant_listing, _viewer(role=ROLE_MANAGER), page=0) == [wanted]


def test_members_only_ever_see_their_own_rows(app, factory):
    mine = factory.participant('Maya', 'Lopez')
    theirs = factory.participant('Ana', 'Pérez')
    occurrence = factory.occurrence()
    for participant_id in (mine, theirs):
        factory.donation(participant_id)
        factory.survey(participant_id, occurrence)
        factory.milestone(participant_id)
    viewer = _viewer(mine)

    for builder in (participant_listing, donation_listing, survey_listing, milestone_listing):
        # A search naming someone else still cannot reach their rows
        assert set(_ids(app, builder, viewer)) == {mine}, builder.__name__
        assert _ids(app, builder, viewer, 'Ana') == [], builder.__name__


def test_accounts_without_a_participant_see_nothing(app, factory):
    factory.donation(factory.participant())
    viewer = _viewer(None)

    assert _ids(app, participant_listing, viewer) == []
    assert _ids(app, donation_listing, viewer) == []


def test_donation_search_by_amount_and_date(app, factory):
    ana = factory.participant('Ana', 'Pérez')
    bo = factory.participant('Bo', 'Chen')
    factory.donation(ana, amount='125.00', when=date(2024, 3, 15))
    factory.donation(bo, amount='40.00', when=date(2024, 7, 4))
    manager = _viewer(role=ROLE_MANAGER)

    assert _ids(app, donation_listing, manager, '125') == [ana]
    assert _ids(app, donation_listing, manager, '$40') == [bo]
    assert _ids(app, donation_listing, manager, '2024-07-04') == [bo]
    assert _ids(app, donation_listing, manager, '03/15/2024') == [ana]


def test_event_listing_for_members_is_their_registrations(app, factory):
    mine = factory.participant('Maya', 'Lopez')
    enrolled = factory.occurrence('Robotics Night')
    factory.occurrence('Art Walk')
    factory.registration(mine, enrolled)

    with app.app_context():
        rows = paginate(event_listing(_viewer(mine)), 1).items
        assert [row.event_occurrence_id for row in rows] == [enrolled]
        everything = paginate(event_listing(_viewer(role=ROLE_MANAGER), 'art'), 1).items
        assert [row.name for row in everything] == ['Art Walk']


def test_user_listing_for_members_is_their_own_account(app, factory):
    own = factory.user('maya')
    factory.user('bo')

    with app.app_context():
        rows = paginate(user_listing(_viewer(user_id=own, username='maya')), 1).items
        assert [row.user_id for row in rows] == [own]
        assert len(paginate(user_listing(_viewer(role=ROLE_MANAGER), 'BO'), 1).items) == 1


def _postgres_fold(value):
    """What the compiled lower/replace/translate chain does to a stored value."""
    value = value.lower()
    for ch, text in _REPLACEMENTS:
        value = value.replace(ch, text)
    return value.translate(str.maketrans(_ACCENTED, _PLAIN))


@pytest.mark.parametrize('name', ['Pérez', 'Dvořák', 'Łódź', 'Nguyễn', 'Ǆurić', 'Йован', 'Ærø', 'Ősz'])
def test_postgres_fold_matches_python_fold(name):
    assert _postgres_fold(name) == fold_text(name)


def test_postgres_statement_folds_both_sides():
    clause = text_search('Dvořák', [Participant.last_name])

    sql = str(clause.compile(dialect=postgresql.dialect(), compile_kwargs={'literal_binds': True}))

    assert 'translate(' in sql
    assert 'ř' in sql
    assert "'dvorak'" in sql


@pytest.mark.parametrize('term', ['%', '_', '100%'])
def test_wildcards_in_the_term_match_literally(app, factory, term):
    percent = factory.participant('100%', 'Club')
    factory.participant('Ana', 'Pérez')

    expected = [] if term == '_' else [percent]
    assert _ids(app, participant_listing, _viewer(role=ROLE_MANAGER), term) == expected
