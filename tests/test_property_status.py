import itertools
import logging

import pytest

from keystone import db
from keystone.services.property_status import derive_property_status, update_property_status

UNIT_STATUSES = ('vacant', 'reserved', 'occupied', 'maintenance')


def expected_status(statuses):
    if not statuses:
        return None
    if 'vacant' in statuses:
        return 'vacant'
    if set(statuses) <= {'occupied', 'reserved'}:
        return 'occupied'
    return 'maintenance'


@pytest.mark.parametrize('size', range(6))
def test_derive_matches_rule_for_every_multiset(size):
    for statuses in itertools.combinations_with_replacement(UNIT_STATUSES, size):
        assert derive_property_status(statuses) == expected_status(statuses), statuses
        # order never matters
        assert derive_property_status(reversed(statuses)) == derive_property_status(statuses)


def test_fully_reserved_property_counts_as_occupied():
    assert derive_property_status(['reserved', 'reserved']) == 'occupied'


def test_single_maintenance_unit_among_leased_units():
    assert derive_property_status(['occupied', 'reserved', 'maintenance']) == 'maintenance'


def test_update_persists_new_status(make_property, make_unit):
    property = make_property()
    unit = make_unit(property, status='maintenance')
    assert property.status == 'maintenance'

    unit.status = 'vacant'
    db.session.commit()

    assert update_property_status(property.id) == 'vacant'
    db.session.expire_all()
    assert property.status == 'vacant'


def test_update_leaves_empty_property_alone(make_property):
    property = make_property(status='maintenance')
    assert update_property_status(property.id) == 'maintenance'


def test_update_missing_property_is_logged_not_raised(app, caplog):
    with caplog.at_level(logging.WARNING):
        assert update_property_status(9999) is None
    assert 'not found' in caplog.text
