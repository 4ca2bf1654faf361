"""
Pytest fixtures for Kasse backend tests.

Provides an in-memory application, per-test table cleanup, and factories for
stores, devices, sessions, charges, events and receipts.
"""

import itertools
from datetime import datetime

import pytest
from kasse import create_app
from kasse.extensions import db
from kasse.models import (
    ConnectedCharge,
    PosDevice,
    PosEvent,
    PosLineCorrection,
    PosSession,
    Receipt,
    Store,
    User,
)


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    storage = tmp_path_factory.mktemp("storage")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SAFT_SOFTWARE_COMPANY_NAME': 'Kasse AS',
        'SAFT_SOFTWARE_ID': 'Kasse',
        'SAFT_SOFTWARE_VERSION': '2.1',
        'SAFT_STORAGE_DIR': str(storage / 'saf-t'),
        'REPORT_STORAGE_DIR': str(storage / 'exports'),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
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


_sequence = itertools.count(1)


@pytest.fixture(scope='function')
def make_store(db_session):
    def _make(name="Test AS", slug="test-as", organization_number="123456789", **kwargs):
        store = Store(
            name=name,
            slug=slug,
            store_metadata={"organization_number": organization_number} if organization_number else None,
            **kwargs,
        )
        db_session.add(store)
        db_session.commit()
        return store
    return _make


@pytest.fixture(scope='function')
def store(make_store):
    """Create the default store."""
    return make_store()


@pytest.fixture(scope='function')
def make_device(db_session):
    def _make(store, device_name="Kasse 1"):
        device = PosDevice(
            store_id=store.id,
            device_identifier=f"device-{next(_sequence)}",
            device_name=device_name,
            platform="android",
        )
        db_session.add(device)
        db_session.commit()
        return device
    return _make


@pytest.fixture(scope='function')
def cashier(db_session):
    user = User(name="Kari Nordmann", email=f"kari{next(_sequence)}@example.no")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def make_pos_session(db_session):
    def _make(
        store,
        opened_at=datetime(2024, 3, 1, 10, 0),
        closed_at=datetime(2024, 3, 1, 18, 0),
        status="closed",
        session_number=None,
        device=None,
        user=None,
        **kwargs,
    ):
        pos_session = PosSession(
            store_id=store.id,
            pos_device_id=device.id if device else None,
            user_id=user.id if user else None,
            session_number=session_number or f"{next(_sequence):06d}",
            status=status,
            opened_at=opened_at,
            closed_at=closed_at if status == "closed" else None,
            **kwargs,
        )
        db_session.add(pos_session)
        db_session.commit()
        return pos_session
    return _make


@pytest.fixture(scope='function')
def make_charge(db_session):
    def _make(pos_session, amount, payment_method="cash", status="succeeded", tip_amount=0, paid_at=None, **kwargs):
        charge = ConnectedCharge(
            pos_session_id=pos_session.id,
            stripe_charge_id=kwargs.pop("stripe_charge_id", f"ch_{next(_sequence)}"),
            amount=amount,
            status=status,
            payment_method=payment_method,
            tip_amount=tip_amount,
            paid_at=paid_at or pos_session.opened_at,
            **kwargs,
        )
        db_session.add(charge)
        db_session.commit()
        return charge
    return _make


@pytest.fixture(scope='function')
def make_event(db_session):
    def _make(pos_session, event_code, event_type="drawer", event_data=None, description=None, occurred_at=None):
        event = PosEvent(
            store_id=pos_session.store_id,
            pos_device_id=pos_session.pos_device_id,
            pos_session_id=pos_session.id,
            event_code=event_code,
            event_type=event_type,
            description=description,
            event_data=event_data,
            occurred_at=occurred_at or pos_session.opened_at,
        )
        db_session.add(event)
        db_session.commit()
        return event
    return _make


@pytest.fixture(scope='function')
def make_receipt(db_session):
    def _make(pos_session, receipt_data=None, receipt_type="sales"):
        receipt = Receipt(
            store_id=pos_session.store_id,
            pos_session_id=pos_session.id,
            receipt_number=f"R{next(_sequence)}",
            receipt_type=receipt_type,
            receipt_data=receipt_data,
        )
        db_session.add(receipt)
        db_session.commit()
        return receipt
    return _make


@pytest.fixture(scope='function')
def make_line_correction(db_session):
    def _make(pos_session, correction_type="quantity_reduction", quantity_reduction=1, amount_reduction=0):
        correction = PosLineCorrection(
            pos_session_id=pos_session.id,
            correction_type=correction_type,
            quantity_reduction=quantity_reduction,
            amount_reduction=amount_reduction,
        )
        db_session.add(correction)
        db_session.commit()
        return correction
    return _make
