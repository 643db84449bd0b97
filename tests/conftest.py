"""
Pytest configuration and fixtures for testing the Neighborly API.
"""

import hashlib
import hmac
import json
import time

import pytest
from faker import Faker

from neighborly import create_app, db
from neighborly.errors import UpstreamError
from neighborly.models import User, Task
from neighborly.services.escrow import StripeEscrowGateway, CheckoutSession
from neighborly.utils import create_access_token

fake = Faker()

WEBHOOK_SECRET = 'whsec_test_secret'


class FakeEscrowGateway(StripeEscrowGateway):
    """Escrow gateway that records outbound calls instead of calling Stripe.

    Signature verification of inbound events is inherited unchanged.
    """

    def __init__(self):
        super().__init__()
        self.sessions = []
        self.expired = []
        self.releases = []
        self.refunds = []
        self.onboarded = []
        self.ready_accounts = set()
        self.fail_checkout = False
        self.fail_expire = False
        self.fail_release = False
        self.fail_refund = False

    def create_checkout_session(self, task, destination_account_id, total_cents, fee_cents, metadata,
                                customer_email=None):
        if self.fail_checkout:
            raise UpstreamError('Payment provider is unavailable, please try again')
        session = CheckoutSession(
            id=f'cs_test_{len(self.sessions) + 1}_{task.id[:8]}',
            url=f'https://checkout.stripe.test/pay/{len(self.sessions) + 1}',
        )
        self.sessions.append({
            'session': session,
            'task_id': task.id,
            'destination': destination_account_id,
            'total_cents': total_cents,
            'fee_cents': fee_cents,
            'metadata': dict(metadata),
            'customer_email': customer_email,
        })
        return session

    def expire_checkout_session(self, session_id):
        if self.fail_expire:
            raise UpstreamError('Expiring checkout failed: session already complete')
        self.expired.append(session_id)

    def get_charge_id(self, payment_intent_id):
        return f'ch_{payment_intent_id}'

    def release(self, payment_intent_id):
        if self.fail_release:
            raise UpstreamError('Capture failed: card_declined')
        self.releases.append(payment_intent_id)

    def refund(self, payment_intent_id):
        if self.fail_refund:
            raise UpstreamError('Refund failed: api_error')
        self.refunds.append(payment_intent_id)

    def create_onboarding_link(self, user):
        account_id = user.stripe_account_id or f'acct_test_{user.id}'
        self.onboarded.append(user.id)
        return account_id, f'https://connect.stripe.test/setup/{account_id}'

    def account_payouts_enabled(self, account_id):
        return account_id in self.ready_accounts


@pytest.fixture
def gateway():
    return FakeEscrowGateway()


@pytest.fixture
def app(gateway):
    """Create application for testing on a fresh in-memory database."""
    app = create_app('testing', escrow_gateway=gateway)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client for each test function."""
    return app.test_client()


def _create_user(payout_ready=False, **overrides):
    """Helper to create a user with sensible defaults."""
    user_id = overrides.pop('id', fake.uuid4())
    data = {
        'name': fake.first_name(),
        'email': fake.unique.email(),
    }
    data.update(overrides)
    user = User(id=user_id, **data)
    if payout_ready:
        user.stripe_account_id = f'acct_{fake.pystr(min_chars=12, max_chars=12)}'
        user.payouts_enabled = True
    db.session.add(user)
    db.session.commit()
    return user


def auth_headers_for(user_id):
    return {'Authorization': f'Bearer {create_access_token(user_id)}'}


@pytest.fixture
def poster(app):
    return _create_user(name='Paula Poster')


@pytest.fixture
def helper_a(app):
    return _create_user(payout_ready=True, name='Alex Helper')


@pytest.fixture
def helper_b(app):
    return _create_user(payout_ready=True, name='Blair Helper')


@pytest.fixture
def stranger(app):
    return _create_user(name='Sam Stranger')


@pytest.fixture
def poster_headers(poster):
    return auth_headers_for(poster.id)


@pytest.fixture
def helper_a_headers(helper_a):
    return auth_headers_for(helper_a.id)


@pytest.fixture
def helper_b_headers(helper_b):
    return auth_headers_for(helper_b.id)


@pytest.fixture
def stranger_headers(stranger):
    return auth_headers_for(stranger.id)


def task_payload(**overrides):
    data = {
        'title': fake.sentence(nb_words=4),
        'description': fake.paragraph(),
        'category': 'cleaning',
        'zip_code': '94107',
        'area_description': 'Near the ballpark',
        'full_address': fake.street_address(),
        'price': 30,
        'photos_required': False,
    }
    data.update(overrides)
    return data


def post_task(client, headers, **overrides):
    response = client.post('/api/tasks', json=task_payload(**overrides), headers=headers)
    assert response.status_code == 201, response.json
    return response.json['task']


def post_offer(client, task_id, headers, note='I can do this tomorrow'):
    response = client.post(f'/api/tasks/{task_id}/offers', json={'note': note}, headers=headers)
    assert response.status_code == 201, response.json
    return response.json['offer']


def sign_payload(payload, secret=WEBHOOK_SECRET, timestamp=None):
    """Build a Stripe-Signature header the way Stripe signs webhooks."""
    timestamp = timestamp or int(time.time())
    signed = f'{timestamp}.{payload}'.encode('utf-8')
    signature = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return f't={timestamp},v1={signature}'


def checkout_completed_event(session_record, payment_intent='pi_test_123', event_id='evt_test_1'):
    """A checkout.session.completed event for a session the fake gateway created."""
    return {
        'id': event_id,
        'type': 'checkout.session.completed',
        'data': {
            'object': {
                'id': session_record['session'].id,
                'object': 'checkout.session',
                'payment_intent': payment_intent,
                'payment_status': 'unpaid',
                'metadata': dict(session_record['metadata']),
            }
        },
    }


def send_webhook(client, event, secret=WEBHOOK_SECRET):
    payload = json.dumps(event)
    return client.post(
        '/api/payments/webhook',
        data=payload,
        headers={'Stripe-Signature': sign_payload(payload, secret), 'Content-Type': 'application/json'},
    )


@pytest.fixture
def open_task(client, poster_headers):
    """A requested $30 task with no offers."""
    return post_task(client, poster_headers, price=30)


@pytest.fixture
def offered_task(client, open_task, helper_a_headers, helper_b_headers):
    """A requested task with offers from helper A and helper B."""
    offer_a = post_offer(client, open_task['id'], helper_a_headers)
    offer_b = post_offer(client, open_task['id'], helper_b_headers)
    return {'task': open_task, 'offer_a': offer_a, 'offer_b': offer_b}


@pytest.fixture
def chosen_task(client, offered_task, poster_headers, gateway):
    """Offer A chosen, checkout session created, webhook not yet delivered."""
    task_id = offered_task['task']['id']
    response = client.post(
        f'/api/tasks/{task_id}/choose-helper',
        json={'offer_id': offered_task['offer_a']['id']},
        headers=poster_headers,
    )
    assert response.status_code == 200, response.json
    return dict(offered_task, session=gateway.sessions[-1])


@pytest.fixture
def accepted_task(client, chosen_task):
    """Checkout completed: task accepted with helper A."""
    response = send_webhook(client, checkout_completed_event(chosen_task['session']))
    assert response.status_code == 200
    assert response.json['status'] == 'accepted'
    return chosen_task


def reload_task(task_id):
    db.session.expire_all()
    return db.session.get(Task, task_id)


def account_updated_event(account_id, enabled=True, event_id='evt_account_1'):
    """An account.updated event for a connected account."""
    return {
        'id': event_id,
        'type': 'account.updated',
        'data': {
            'object': {
                'id': account_id,
                'object': 'account',
                'charges_enabled': enabled,
                'payouts_enabled': enabled,
            }
        },
    }
