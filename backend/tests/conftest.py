"""
Pytest fixtures for relief backend tests.

Provides test database setup, responder identities, a catalog, a fake
geocoder and a test client.
"""

import pytest
from relief import create_app
from relief.extensions import db
from relief.models import Item, Membership, Organization, Pin, PinItem
from relief.models.membership import MEMBER_STATUS_ACTIVE, MEMBER_STATUS_INACTIVE, MEMBER_TYPE_TRACKER
from relief.models.pins import KIND_DAMAGE, STATUS_CONFIRMED
from relief.services.geocoding_service import EXTENSION_KEY, UNKNOWN_REGION


class FakeGeocoder:
    """Maps exact coordinates to region labels and records every lookup."""

    def __init__(self):
        self.regions = {}
        self.calls = []

    def reverse_geocode(self, lat, lng):
        self.calls.append((lat, lng))
        return self.regions.get((lat, lng), UNKNOWN_REGION)


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'GEOCODER_MIN_INTERVAL_SECONDS': 0,
    'STORE_RETRY_BACKOFF_SECONDS': 0,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def geocoder(app):
    fake = FakeGeocoder()
    app.extensions[EXTENSION_KEY] = fake
    yield fake
    app.extensions.pop(EXTENSION_KEY, None)


@pytest.fixture(scope='function')
def db_session(app, geocoder):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def water(db_session):
    item = Item(name="Drinking Water", unit="bottles", category="water")
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def rice(db_session):
    item = Item(name="Rice", unit="kg", category="food")
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope='function')
def relief_org(db_session):
    org = Organization(name="Red Relief", account_actor_id="org-account-1")
    db_session.add(org)
    db_session.commit()
    return org


def add_membership(db_session, actor_id, *, org=None, member_type=MEMBER_TYPE_TRACKER, status=MEMBER_STATUS_ACTIVE):
    membership = Membership(
        actor_id=actor_id,
        organization_id=org.id if org else None,
        member_type=member_type,
        status=status,
    )
    db_session.add(membership)
    db_session.commit()
    return membership


@pytest.fixture(scope='function')
def tracker(db_session, relief_org):
    """Active tracker membership for actor 'tracker-1'."""
    return add_membership(db_session, "tracker-1", org=relief_org)


@pytest.fixture(scope='function')
def inactive_tracker(db_session, relief_org):
    return add_membership(db_session, "tracker-gone", org=relief_org, status=MEMBER_STATUS_INACTIVE)


def make_pin(db_session, *, status=STATUS_CONFIRMED, lat=16.8, lng=96.15, description="Roof collapsed", lines=()):
    """
    Insert a pin directly, with optional (item, requested_qty[, remaining_qty]) lines.
    """
    pin = Pin(
        kind=KIND_DAMAGE,
        status=status,
        phone="+95-9-000-0000",
        description=description,
        latitude=lat,
        longitude=lng,
    )
    db_session.add(pin)
    db_session.flush()
    for line in lines:
        item, requested = line[0], line[1]
        remaining = line[2] if len(line) > 2 else requested
        db_session.add(PinItem(pin_id=pin.id, item_id=item.id, requested_qty=requested, remaining_qty=remaining))
    db_session.commit()
    return pin


def line_ids(db_session, pin_id):
    return [
        row[0]
        for row in db_session.query(PinItem.id).filter_by(pin_id=pin_id).order_by(PinItem.id.asc()).all()
    ]


def actor_headers(actor_id, role=None):
    headers = {'X-Actor-Id': actor_id}
    if role:
        headers['X-Actor-Role'] = role
    return headers
