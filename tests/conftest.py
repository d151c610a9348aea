import pytest
from datetime import timedelta
from decimal import Decimal
import os
import tempfile
import uuid

# Force test configuration to use a throwaway SQLite file ONLY if not already set (e.g. by CI)
if 'TEST_DATABASE_URL' not in os.environ:
    _db_dir = tempfile.mkdtemp(prefix='discounts-tests-')
    os.environ['TEST_DATABASE_URL'] = f"sqlite:///{os.path.join(_db_dir, 'discounts.db')}"

from app import create_app
from app import database
from app.database import create_schema, drop_schema, get_session
from app.models import Discount, DiscountType, utcnow
from app.services.discount_events import DiscountEventListener
from app.services.discount_service import DiscountService
from app.services.discount_settings import DiscountSettings


class RecordingListener(DiscountEventListener):
    """Collects notified events for assertions."""

    def __init__(self):
        self.events = []

    def notify(self, event_kind, payload):
        self.events.append((event_kind, payload))

    def kinds(self):
        return [kind for kind, _ in self.events]


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    app.config['TESTING'] = True
    return app


@pytest.fixture(scope='function', autouse=True)
def schema(app):
    """Fresh tables for every test."""
    database.db_session.remove()
    create_schema()
    yield
    database.db_session.remove()
    drop_schema()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def listener():
    return RecordingListener()


@pytest.fixture(scope='function')
def settings():
    return DiscountSettings()


@pytest.fixture(scope='function')
def service(session, settings, listener):
    """DiscountService with default policy and a recording listener."""
    return DiscountService(session, settings=settings, listener=listener)


@pytest.fixture(scope='function')
def make_discount(session):
    """Factory for catalog entries; unique code per call unless given."""

    def _make(value='10', type=DiscountType.PERCENTAGE, **kwargs):
        kwargs.setdefault('code', f'TEST-{str(uuid.uuid4())[:8].upper()}')
        kwargs.setdefault('name', f'Discount {kwargs["code"]}')
        kwargs.setdefault('is_active', True)
        kwargs.setdefault('priority', 0)
        kwargs.setdefault('current_total_usage', 0)
        discount = Discount(type=type, value=Decimal(str(value)), **kwargs)
        session.add(discount)
        session.commit()
        return discount

    return _make


@pytest.fixture(scope='function')
def user_id():
    return 1001


@pytest.fixture(scope='function')
def expired_discount(make_discount):
    return make_discount(code='EXPIRED', expires_at=utcnow() - timedelta(days=1))


@pytest.fixture(scope='function')
def inactive_discount(make_discount):
    return make_discount(code='INACTIVE', is_active=False)
