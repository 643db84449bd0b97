"""Stripe Connect escrow gateway.

Funds are held with Checkout in manual-capture mode as a destination
charge to the helper's connected account:

- choosing a helper creates a Checkout Session (authorization only),
- completing the task captures the PaymentIntent (release),
- canceling an accepted task voids the authorization, or refunds and
  reverses the transfer when it was already captured.

The lifecycle engine talks to this class through ``get_gateway()`` so tests
and other deployments can inject a replacement via ``create_app``.
"""

import json
import logging
import time
from dataclasses import dataclass

import stripe
from flask import current_app

from neighborly.errors import InvalidInput, Unauthorized, UpstreamError

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = 'checkout.session.completed'
ACCOUNT_UPDATED = 'account.updated'


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class StripeEscrowGateway:
    """Escrow operations backed by the Stripe API."""

    def __init__(self):
        self.config = {}

    def init_app(self, app):
        self.config = app.config
        stripe.api_key = app.config.get('STRIPE_SECRET_KEY')
        app.extensions['escrow_gateway'] = self

    # ------------------------------------------------------------------ #
    # Outbound calls
    # ------------------------------------------------------------------ #

    def create_checkout_session(self, task, destination_account_id, total_cents, fee_cents, metadata,
                                customer_email=None):
        """Create a hosted checkout that authorizes ``total_cents`` for the task.

        Args:
            task: Task being paid for (title and description shown on the page)
            destination_account_id: helper's connected account
            total_cents: amount charged to the poster
            fee_cents: platform application fee kept on capture
            metadata: correlation ids echoed back by the webhook
            customer_email: poster's email to prefill, when known

        Returns:
            CheckoutSession with the session id and redirect URL

        Raises:
            UpstreamError: Stripe rejected the request or was unreachable
        """
        frontend_url = self.config.get('FRONTEND_URL')
        ttl_minutes = self.config.get('CHECKOUT_SESSION_TTL_MINUTES', 60)
        params = {
            'mode': 'payment',
            'line_items': [{
                'price_data': {
                    'currency': self.config.get('CURRENCY', 'usd'),
                    'product_data': {
                        'name': task.title,
                        'description': task.description[:500],
                    },
                    'unit_amount': total_cents,
                },
                'quantity': 1,
            }],
            'payment_intent_data': {
                'capture_method': 'manual',  # hold funds until completion
                'application_fee_amount': fee_cents,
                'transfer_data': {'destination': destination_account_id},
                'metadata': metadata,
            },
            'metadata': metadata,
            'expires_at': int(time.time()) + ttl_minutes * 60,
            'success_url': f'{frontend_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}',
            'cancel_url': f"{frontend_url}/payment/cancel?task_id={metadata['taskId']}",
        }
        if customer_email:
            params['customer_email'] = customer_email
        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            logger.error(f'Checkout session creation failed for task {task.id}: {e}')
            raise UpstreamError('Payment provider is unavailable, please try again')
        return CheckoutSession(id=session.id, url=session.url)

    def expire_checkout_session(self, session_id):
        """Close a checkout the poster abandoned so it can no longer be paid."""
        try:
            stripe.checkout.Session.expire(session_id)
        except stripe.StripeError as e:
            raise UpstreamError(f'Expiring checkout failed: {e}')

    def get_charge_id(self, payment_intent_id):
        """Charge created for an authorized PaymentIntent, or None."""
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            raise UpstreamError(f'Payment lookup failed: {e}')
        charge = getattr(intent, 'latest_charge', None)
        if charge is not None and not isinstance(charge, str):
            charge = charge.id  # expanded Charge object
        return charge

    def release(self, payment_intent_id):
        """Capture held funds; the helper's share transfers on capture."""
        try:
            stripe.PaymentIntent.capture(payment_intent_id)
        except stripe.StripeError as e:
            raise UpstreamError(f'Capture failed: {e}')

    def refund(self, payment_intent_id):
        """Return funds to the poster.

        An uncaptured authorization is canceled; a captured payment is
        refunded with the transfer and application fee reversed. An intent
        that is already canceled needs nothing.
        """
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
            if intent.status == 'canceled':
                return
            if intent.status == 'requires_capture':
                stripe.PaymentIntent.cancel(payment_intent_id)
            else:
                stripe.Refund.create(
                    payment_intent=payment_intent_id,
                    reverse_transfer=True,
                    refund_application_fee=True,
                )
        except stripe.StripeError as e:
            raise UpstreamError(f'Refund failed: {e}')

    def create_onboarding_link(self, user):
        """Create (if needed) an Express account and an onboarding link.

        Returns:
            tuple: (account_id, onboarding_url)
        """
        frontend_url = self.config.get('FRONTEND_URL')
        try:
            account_id = user.stripe_account_id
            if not account_id:
                account = stripe.Account.create(type='express', email=user.email)
                account_id = account.id
            link = stripe.AccountLink.create(
                account=account_id,
                refresh_url=f'{frontend_url}/payouts/onboarding/refresh',
                return_url=f'{frontend_url}/payouts/onboarding/complete',
                type='account_onboarding',
            )
        except stripe.StripeError as e:
            logger.error(f'Stripe onboarding failed for user {user.id}: {e}')
            raise UpstreamError('Payment provider is unavailable, please try again')
        return account_id, link.url

    def account_payouts_enabled(self, account_id):
        """True once the connected account can take charges and receive payouts."""
        try:
            account = stripe.Account.retrieve(account_id)
        except stripe.StripeError as e:
            raise UpstreamError(f'Account lookup failed: {e}')
        return bool(getattr(account, 'charges_enabled', False) and getattr(account, 'payouts_enabled', False))

    # ------------------------------------------------------------------ #
    # Inbound events
    # ------------------------------------------------------------------ #

    def verify_event(self, payload, sig_header):
        """Check the Stripe-Signature header, then parse the event body.

        Nothing in the payload is read before the signature is verified.

        Raises:
            Unauthorized: missing/invalid signature or no webhook secret configured
            InvalidInput: signed body is not valid JSON
        """
        secret = self.config.get('STRIPE_WEBHOOK_SECRET')
        if not secret:
            logger.error('STRIPE_WEBHOOK_SECRET is not configured, rejecting webhook')
            raise Unauthorized('Webhook signature cannot be verified')
        if not sig_header:
            raise Unauthorized('Missing signature')

        try:
            if isinstance(payload, bytes):
                payload = payload.decode('utf-8')
        except UnicodeDecodeError:
            # Stripe only signs UTF-8 JSON
            raise Unauthorized('Invalid signature')

        try:
            stripe.WebhookSignature.verify_header(
                payload, sig_header, secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError:
            raise Unauthorized('Invalid signature')

        try:
            event = json.loads(payload)
        except ValueError:
            raise InvalidInput('Invalid payload')
        if not isinstance(event, dict) or 'type' not in event:
            raise InvalidInput('Invalid payload')
        return event


def get_gateway():
    """The escrow gateway configured on the current app."""
    return current_app.extensions['escrow_gateway']
