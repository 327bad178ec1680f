import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app import create_app
from app.database import create_all, drop_all, get_session
from app.models import Promotion, DiscountType
from app.services.cart_service import CartLine, CartStore, MemoryCartStorage
from app.services.checkout_service import BuyerSnapshot, SubmissionGuard
from app.exceptions import GatewaySessionError

BUYER_ID = 'buyer-1'
SELLER_ID = 'seller-1'
OTHER_SELLER_ID = 'seller-2'


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    return app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh in-memory schema per test."""
    create_all()
    session = get_session()
    yield session
    session.rollback()
    session.remove()
    drop_all()


@pytest.fixture(scope='function')
def buyer_client(client, session):
    """Test client logged in as the buyer."""
    with client.session_transaction() as sess:
        sess['user_id'] = BUYER_ID
    return client


@pytest.fixture(scope='function')
def seller_client(app, session):
    """Test client logged in as the seller of the sample lines."""
    client = app.test_client()
    with client.session_transaction() as sess:
        sess['user_id'] = 'seller-user-1'
        sess['seller_id'] = SELLER_ID
    return client


def make_line(product_id='p-1', unit_price=1000, quantity=2, seller_id=SELLER_ID, title=None, image=None):
    return CartLine(
        product_id=product_id,
        title=title or f'Product {product_id}',
        unit_price=unit_price,
        quantity=quantity,
        seller_id=seller_id,
        image=image,
    )


@pytest.fixture(scope='function')
def cart():
    """Cart with one 2 x 1000 line, kept in memory."""
    store = CartStore(BUYER_ID, MemoryCartStorage())
    store.add(make_line(title='Oak Dining Chair', image='https://img.test/chair.jpg'))
    return store


@pytest.fixture(scope='function')
def empty_cart():
    return CartStore(BUYER_ID, MemoryCartStorage())


@pytest.fixture(scope='function')
def buyer():
    return BuyerSnapshot(buyer_id=BUYER_ID, name='Maria Santos', address='12 Mabini St, Quezon City')


@pytest.fixture(scope='function')
def guard():
    return SubmissionGuard()


@pytest.fixture(scope='function')
def now():
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _voucher(session, **kwargs):
    voucher = Promotion(type='voucher', status='active', **kwargs)
    session.add(voucher)
    session.commit()
    return voucher


@pytest.fixture(scope='function')
def seller_voucher(session, now):
    """10% voucher owned by the cart's seller."""
    return _voucher(
        session,
        seller_id=SELLER_ID,
        name='Ten off',
        code='TEN',
        discount_type=DiscountType.PERCENTAGE.value,
        discount_value=Decimal('10'),
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
    )


@pytest.fixture(scope='function')
def platform_voucher(session, now):
    """Fixed 500 voucher usable with any seller."""
    return _voucher(
        session,
        seller_id=None,
        name='Platform 500',
        code='HIVE500',
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal('500'),
        start_date=now - timedelta(days=1),
        end_date=None,
    )


@pytest.fixture(scope='function')
def other_seller_voucher(session, now):
    return _voucher(
        session,
        seller_id=OTHER_SELLER_ID,
        name='Not yours',
        code='OTHER',
        discount_type=DiscountType.PERCENTAGE.value,
        discount_value=Decimal('50'),
        start_date=now - timedelta(days=1),
        end_date=now + timedelta(days=1),
    )


@pytest.fixture(scope='function')
def expired_voucher(session, now):
    return _voucher(
        session,
        seller_id=SELLER_ID,
        name='Expired',
        code='OLD',
        discount_type=DiscountType.FIXED.value,
        discount_value=Decimal('100'),
        start_date=now - timedelta(days=10),
        end_date=now - timedelta(days=1),
    )


class FakeGateway:
    """Stands in for PaymentGatewayClient."""

    def __init__(self, url='https://pay.test/session/abc', error=None):
        self.url = url
        self.error = error
        self.calls = []

    def create_checkout_session(self, order_id):
        self.calls.append(order_id)
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture(scope='function')
def gateway():
    return FakeGateway()


@pytest.fixture(scope='function')
def failing_gateway():
    return FakeGateway(error=GatewaySessionError())


@pytest.fixture(scope='function')
def line_factory():
    return make_line


@pytest.fixture(scope='function')
def gateway_factory():
    return FakeGateway
