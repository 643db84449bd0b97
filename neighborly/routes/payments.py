"""Payment routes for the Stripe escrow flow."""

import logging

from flask import Blueprint, request, jsonify, current_app

from neighborly import db
from neighborly.models import User
from neighborly.services import lifecycle
from neighborly.services.escrow import get_gateway
from neighborly.utils import token_required

logger = logging.getLogger(__name__)

payments_bp = Blueprint('payments', __name__)


@payments_bp.route('/webhook', methods=['POST'])
def stripe_webhook():
    """Handle Stripe webhooks.

    The signature is verified before the body is parsed. Any verified event
    is acknowledged with 200, including ones that change nothing, so Stripe
    does not keep redelivering them.
    """
    event = get_gateway().verify_event(
        request.get_data(),
        request.headers.get('Stripe-Signature')
    )

    result = lifecycle.handle_escrow_event(event)
    logger.info(f'Stripe event {event.get("id")} ({event.get("type")}): {result}')

    return jsonify({'received': True, 'status': result}), 200


@payments_bp.route('/connect/onboard', methods=['POST'])
@token_required
def onboard_payouts(current_user_id):
    """Start (or resume) Stripe Connect onboarding so the caller can be paid as a helper."""
    user = User.get_or_create(current_user_id)
    gateway = get_gateway()
    account_id, url = gateway.create_onboarding_link(user)

    if user.stripe_account_id != account_id:
        user.stripe_account_id = account_id
    # Stays false until Stripe reports the account can be paid; account.updated keeps it current
    user.payouts_enabled = gateway.account_payouts_enabled(account_id)
    db.session.commit()

    return jsonify({'url': url, 'payouts_ready': user.is_payout_ready}), 200


@payments_bp.route('/config', methods=['GET'])
def get_stripe_config():
    """Get Stripe public configuration."""
    return jsonify({
        'publishable_key': current_app.config.get('STRIPE_PUBLISHABLE_KEY'),
        'platform_fee_percent': float(current_app.config['PLATFORM_FEE_PERCENT']),
        'min_job_price': float(current_app.config['MIN_JOB_PRICE']),
        'currency': current_app.config['CURRENCY'],
    }), 200
