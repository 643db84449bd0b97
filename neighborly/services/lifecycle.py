"""Task lifecycle engine.

State machine::

    requested --offer--------------> requested   (offers accumulate)
    requested --choose helper------> requested   (checkout session created)
    requested --checkout completed-> accepted    (helper bound, siblings declined, chat opened)
    accepted  --start--------------> in_progress
    accepted | in_progress --complete--> completed
    requested | accepted --cancel--> canceled
    completed --dispute------------> disputed

Only the payment webhook moves a task to ``accepted``: a poster who abandons
checkout must never leave a task looking assigned. Every status write is a
compare-and-set through ``task_store.transition`` so a cancellation and a
payment confirmation racing on the same task cannot both win.
"""

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from neighborly import db
from neighborly.constants import VALID_CATEGORIES, normalize_category
from neighborly.errors import (
    InvalidInput, Forbidden, NotFound, InvalidState, PreconditionFailed, UpstreamError
)
from neighborly.models import (
    Task, TaskStatus, PaymentStatus, CanceledBy, Offer, OfferStatus, User
)
from neighborly.services import chat, task_store
from neighborly.services.escrow import get_gateway, CHECKOUT_COMPLETED, ACCOUNT_UPDATED
from neighborly.services.pricing import parse_price, calculate_fees
from neighborly.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

REQUIRED_TASK_FIELDS = ('title', 'description', 'category', 'zip_code', 'area_description', 'full_address')
MAX_NOTE_LENGTH = 2000


def _require_text(data, field):
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f'{field} is required')
    return value.strip()


# --------------------------------------------------------------------------- #
# Posting and offers
# --------------------------------------------------------------------------- #

def create_task(poster_id, data):
    """Post a new task in ``requested`` status. No escrow call happens here."""
    if not isinstance(data, dict):
        raise InvalidInput('Request body must be a JSON object')

    fields = {field: _require_text(data, field) for field in REQUIRED_TASK_FIELDS}

    category = normalize_category(fields['category'])
    if category is None:
        raise InvalidInput(
            f"Invalid category. Must be one of: {', '.join(sorted(VALID_CATEGORIES))}"
        )

    price = parse_price(data.get('price'))
    min_price = current_app.config['MIN_JOB_PRICE']
    if price < min_price:
        raise InvalidInput(f'Minimum job price is ${min_price:.2f}')

    photos_required = data.get('photos_required', False)
    if not isinstance(photos_required, bool):
        raise InvalidInput('photos_required must be true or false')

    poster = User.get_or_create(poster_id)
    task = Task(
        title=fields['title'],
        description=fields['description'],
        category=category,
        zip_code=fields['zip_code'],
        area_description=fields['area_description'],
        full_address=fields['full_address'],
        price=price,
        photos_required=photos_required,
        poster_id=poster_id,
        poster_name=poster.display_name,
        status=TaskStatus.REQUESTED,
        payment_status=PaymentStatus.PENDING,
    )
    db.session.add(task)
    db.session.commit()

    logger.info(f'Task created: {task.id} by {poster_id}, price {price}, category {category}')
    return task


def submit_offer(task_id, helper_id, data):
    """Record a helper's offer against a ``requested`` task."""
    data = data or {}

    # Row lock keeps the task in requested until this insert commits
    task = task_store.lock_task(task_id)
    if task.status != TaskStatus.REQUESTED:
        raise InvalidState('Task is not accepting offers')
    if task.poster_id == helper_id:
        raise Forbidden('You cannot make an offer on your own task')

    note = data.get('note') or ''
    if not isinstance(note, str):
        raise InvalidInput('note must be text')
    if len(note) > MAX_NOTE_LENGTH:
        raise InvalidInput(f'note must be at most {MAX_NOTE_LENGTH} characters')

    proposed_price = None
    if data.get('proposed_price') is not None:
        proposed_price = parse_price(data['proposed_price'], field='proposed_price', places=2)
        if proposed_price <= 0:
            raise InvalidInput('proposed_price must be greater than 0')

    existing = Offer.query.filter_by(task_id=task_id, helper_id=helper_id).first()
    if existing:
        raise InvalidInput('You have already made an offer on this task')

    helper = User.get_or_create(helper_id)
    offer = Offer(
        task_id=task_id,
        helper_id=helper_id,
        helper_name=helper.display_name,
        note=note.strip(),
        proposed_price=proposed_price,
        status=OfferStatus.PENDING,
    )
    db.session.add(offer)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise InvalidInput('You have already made an offer on this task')

    logger.info(f'Offer {offer.id} submitted on task {task_id} by {helper_id}')
    return offer


def list_offers(task_id, viewer_id):
    """Offers on a task: all of them for the poster, only their own for anyone else."""
    task = task_store.get_task(task_id)
    query = Offer.query.filter_by(task_id=task.id)
    if viewer_id != task.poster_id:
        query = query.filter_by(helper_id=viewer_id)
    return query.order_by(Offer.created_at.asc()).all()


# --------------------------------------------------------------------------- #
# Helper selection and payment confirmation
# --------------------------------------------------------------------------- #

def choose_helper(task_id, poster_id, offer_id):
    """Start escrow for the chosen offer and return the checkout redirect.

    The task stays ``requested``; the checkout webhook performs the
    assignment once funds are authorized.
    """
    task = task_store.get_task(task_id)
    if task.poster_id != poster_id:
        raise Forbidden('Only the poster can choose a helper')
    if task.status != TaskStatus.REQUESTED:
        raise InvalidState('Task is not in requested status')

    if not offer_id:
        raise InvalidInput('offer_id is required')
    offer = db.session.get(Offer, offer_id)
    if offer is None or offer.task_id != task.id:
        raise NotFound('Offer not found')
    if offer.status != OfferStatus.PENDING:
        raise InvalidState('Offer is no longer pending')

    helper = db.session.get(User, offer.helper_id)
    if helper is None or not helper.is_payout_ready:
        raise PreconditionFailed('Helper is not payout-ready')

    total_cents, fee_cents, helper_cents = calculate_fees(
        task.price, current_app.config['PLATFORM_FEE_PERCENT']
    )
    metadata = {
        'taskId': task.id,
        'posterId': task.poster_id,
        'helperId': helper.id,
        'offerId': offer.id,
    }

    poster = db.session.get(User, task.poster_id)
    gateway = get_gateway()

    # Gateway first: nothing is written unless the session exists
    session = gateway.create_checkout_session(
        task=task,
        destination_account_id=helper.stripe_account_id,
        total_cents=total_cents,
        fee_cents=fee_cents,
        metadata=metadata,
        customer_email=poster.email if poster else None,
    )

    previous_session_id = task.checkout_session_id
    if previous_session_id:
        logger.info(f'Task {task.id}: replacing checkout session {previous_session_id}')
        try:
            gateway.expire_checkout_session(previous_session_id)
        except UpstreamError:
            # Already completed or expired; a late payment on it is refunded by the webhook
            logger.warning(
                f'Task {task.id}: could not expire superseded checkout {previous_session_id}',
                exc_info=True
            )

    task_store.transition_or_raise(task.id, TaskStatus.REQUESTED, {
        'checkout_session_id': session.id,
        'chosen_offer_id': offer.id,
        'platform_fee_amount': fee_cents,
        'helper_amount': helper_cents,
    })
    db.session.commit()

    logger.info(
        f'Task {task.id}: checkout {session.id} created for offer {offer.id} '
        f'(total {total_cents}, fee {fee_cents}, helper {helper_cents})'
    )
    return {
        'checkout_url': session.url,
        'session_id': session.id,
        'task': task,
    }


def handle_escrow_event(event):
    """Apply a verified escrow webhook event.

    Handles checkout completion and connected-account updates. Safe to call
    repeatedly with the same event. Returns a short status string for the
    acknowledgement body; never raises for unknown events or unknown
    sessions so the gateway does not retry forever.
    """
    event_type = event.get('type')
    if event_type == ACCOUNT_UPDATED:
        return _sync_payout_account((event.get('data') or {}).get('object') or {})
    if event_type != CHECKOUT_COMPLETED:
        logger.debug(f'Ignoring escrow event {event.get("id")} of type {event_type}')
        return 'ignored'

    session = (event.get('data') or {}).get('object') or {}
    session_id = session.get('id')
    metadata = session.get('metadata') or {}

    task = task_store.get_task_by_session(session_id)
    if task is None:
        return _refund_superseded_checkout(session_id, metadata, session.get('payment_intent'))

    if metadata.get('taskId') and metadata['taskId'] != task.id:
        logger.warning(f'Checkout {session_id} metadata names task {metadata["taskId"]}, stored on {task.id}')
        return 'ignored'

    if task.status == TaskStatus.REQUESTED and _accept_from_checkout(task, session, metadata):
        return 'accepted'

    # Either already applied by an earlier delivery, or another transition won
    task = task_store.get_task(task.id)
    if task.status == TaskStatus.REQUESTED:
        # Malformed metadata, nothing was applied
        return 'ignored'
    if task.status == TaskStatus.CANCELED and task.payment_status == PaymentStatus.PENDING:
        return _void_payment_for_canceled_task(task, session.get('payment_intent'))

    logger.info(f'Checkout {session_id} for task {task.id} already handled (status {task.status})')
    return 'duplicate'


def _accept_from_checkout(task, session, metadata):
    """Bind the helper, settle sibling offers and open chat in one commit.

    Returns False when the task had already left ``requested``.
    """
    helper_id = metadata.get('helperId')
    offer_id = metadata.get('offerId') or task.chosen_offer_id
    if not helper_id:
        logger.error(f'Checkout {session.get("id")} for task {task.id} has no helperId in metadata')
        return False

    offer = db.session.get(Offer, offer_id) if offer_id else None
    if offer is None or offer.task_id != task.id:
        offer = Offer.query.filter_by(task_id=task.id, helper_id=helper_id).first()
    if offer is not None:
        helper_name = offer.helper_name
    else:
        helper = db.session.get(User, helper_id)
        helper_name = helper.display_name if helper else 'Helper'

    payment_intent_id = session.get('payment_intent')
    charge_id = None
    if payment_intent_id:
        try:
            charge_id = get_gateway().get_charge_id(payment_intent_id)
        except UpstreamError:
            logger.warning(f'Task {task.id}: charge lookup for {payment_intent_id} failed', exc_info=True)

    poster_id = task.poster_id
    accepted = task_store.transition(task.id, TaskStatus.REQUESTED, {
        'status': TaskStatus.ACCEPTED,
        'helper_id': helper_id,
        'helper_name': helper_name,
        'accepted_at': utcnow(),
        'payment_status': PaymentStatus.PAID,
        'payment_intent_id': payment_intent_id,
        'charge_id': charge_id,
    })
    if not accepted:
        db.session.rollback()
        logger.warning(f'Task {task.id} left requested before checkout {session.get("id")} was applied')
        return False

    if offer is not None:
        Offer.query.filter_by(id=offer.id).update(
            {'status': OfferStatus.ACCEPTED}, synchronize_session='fetch'
        )
    declined = Offer.query.filter(
        Offer.task_id == task.id,
        Offer.id != (offer.id if offer is not None else None),
        Offer.status == OfferStatus.PENDING,
    ).update({'status': OfferStatus.DECLINED}, synchronize_session='fetch')

    chat.create_thread(task.id, poster_id, helper_id)
    db.session.commit()

    logger.info(
        f'Task {task.id} accepted: helper {helper_id}, payment confirmed, '
        f'{declined} sibling offer(s) declined, chat created'
    )
    return True


def _void_payment_for_canceled_task(task, payment_intent_id):
    """Checkout completed after the poster canceled: give the money back."""
    if not payment_intent_id:
        logger.warning(f'Task {task.id} canceled before payment landed, no payment intent to void')
        return 'duplicate'
    try:
        get_gateway().refund(payment_intent_id)
    except UpstreamError:
        logger.error(
            f'Task {task.id} was canceled but payment {payment_intent_id} could not be voided',
            exc_info=True
        )
        return 'refund_failed'

    task_store.set_payment_status(task.id, PaymentStatus.PENDING, {
        'payment_status': PaymentStatus.REFUNDED,
        'payment_intent_id': payment_intent_id,
    })
    db.session.commit()
    logger.info(f'Task {task.id}: late payment {payment_intent_id} voided after cancellation')
    return 'refunded'


def _refund_superseded_checkout(session_id, metadata, payment_intent_id):
    """A session the poster replaced was paid anyway; the money never binds anyone."""
    task = db.session.get(Task, metadata['taskId']) if metadata.get('taskId') else None
    if task is None or not payment_intent_id:
        logger.warning(
            f'Checkout {session_id} completed but no task references it '
            f'(metadata taskId={metadata.get("taskId")})'
        )
        return 'not_found'

    try:
        get_gateway().refund(payment_intent_id)
    except UpstreamError:
        logger.error(
            f'Superseded checkout {session_id} for task {task.id} was paid but '
            f'payment {payment_intent_id} could not be voided',
            exc_info=True
        )
        return 'refund_failed'

    logger.info(
        f'Task {task.id}: payment {payment_intent_id} on superseded checkout {session_id} voided '
        f'(current checkout {task.checkout_session_id})'
    )
    return 'refunded'


def _sync_payout_account(account):
    """Mirror a connected account's charge/payout capability onto its user."""
    account_id = account.get('id')
    user = User.query.filter_by(stripe_account_id=account_id).first() if account_id else None
    if user is None:
        logger.warning(f'Account update for unknown connected account {account_id}')
        return 'not_found'

    enabled = bool(account.get('charges_enabled') and account.get('payouts_enabled'))
    if user.payouts_enabled != enabled:
        user.payouts_enabled = enabled
        db.session.commit()
        logger.info(f'User {user.id}: payouts {"enabled" if enabled else "disabled"} on {account_id}')
    return 'account_updated'


# --------------------------------------------------------------------------- #
# Work, completion, cancellation, dispute
# --------------------------------------------------------------------------- #

def start_task(task_id, user_id):
    """Bound helper marks work as started (optional ``in_progress`` step)."""
    task = task_store.get_task(task_id)
    if task.helper_id is None or task.helper_id != user_id:
        raise Forbidden('Only the assigned helper can start this task')
    if task.status != TaskStatus.ACCEPTED:
        raise InvalidState('Task cannot be started at this status')

    task_store.transition_or_raise(task.id, TaskStatus.ACCEPTED, {
        'status': TaskStatus.IN_PROGRESS,
        'started_at': utcnow(),
    })
    db.session.commit()
    logger.info(f'Task {task.id}: accepted -> in_progress')
    return task


def complete_task(task_id, user_id):
    """Mark the task completed, gated on a proof photo when required."""
    task = task_store.get_task(task_id)
    if not task.is_party(user_id):
        raise Forbidden('Only the poster or the assigned helper can complete this task')
    if task.status not in (TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS):
        raise InvalidState('Task cannot be completed at this status')

    if task.photos_required:
        thread = chat.get_thread_for_task(task.id)
        if thread is None or not chat.has_proof_message(thread.id):
            raise PreconditionFailed('Proof photo required to complete')

    previous = task.status
    task_store.transition_or_raise(task.id, (TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS), {
        'status': TaskStatus.COMPLETED,
        'completed_at': utcnow(),
    })
    db.session.commit()
    logger.info(f'Task {task.id}: {previous} -> completed by {user_id}')

    _release_funds(task)
    return task


def cancel_task(task_id, user_id, canceled_by):
    """Cancel a requested or accepted task on behalf of poster or helper."""
    if canceled_by not in CanceledBy.ALL:
        raise InvalidInput("canceled_by must be 'poster' or 'helper'")

    task = task_store.get_task(task_id)
    party_id = task.poster_id if canceled_by == CanceledBy.POSTER else task.helper_id
    if party_id is None or party_id != user_id:
        raise Forbidden(f'You are not the {canceled_by} of this task')
    if task.status not in (TaskStatus.REQUESTED, TaskStatus.ACCEPTED):
        raise InvalidState('Cannot cancel at this status')

    previous = task.status
    task_store.transition_or_raise(task.id, previous, {
        'status': TaskStatus.CANCELED,
        'canceled_at': utcnow(),
        'canceled_by': canceled_by,
    })
    db.session.commit()
    logger.info(f'Task {task.id}: {previous} -> canceled by {canceled_by} {user_id}')

    # Only an accepted task has money in escrow
    if previous == TaskStatus.ACCEPTED:
        _refund_funds(task)
    return task


def dispute_task(task_id, user_id, reason=None):
    """Flag a completed task as disputed; resolution happens outside the engine."""
    task = task_store.get_task(task_id)
    if not task.is_party(user_id):
        raise Forbidden('Only the poster or the assigned helper can dispute this task')
    if task.status != TaskStatus.COMPLETED:
        raise InvalidState('Only completed tasks can be disputed')
    if reason is not None and not isinstance(reason, str):
        raise InvalidInput('reason must be text')

    task_store.transition_or_raise(task.id, TaskStatus.COMPLETED, {
        'status': TaskStatus.DISPUTED,
        'disputed_at': utcnow(),
        'dispute_reason': reason.strip() if reason else None,
    })
    db.session.commit()
    logger.info(f'Task {task.id}: completed -> disputed by {user_id}')
    return task


# --------------------------------------------------------------------------- #
# Escrow side effects (fire-and-forget)
# --------------------------------------------------------------------------- #

def _release_funds(task):
    if not task.payment_intent_id:
        logger.warning(f'Task {task.id} completed without a payment intent, nothing to release')
        return
    try:
        get_gateway().release(task.payment_intent_id)
    except UpstreamError:
        logger.error(
            f'Task {task.id} completed but releasing payment {task.payment_intent_id} failed, '
            f'needs reconciliation',
            exc_info=True
        )
        return
    task_store.set_payment_status(task.id, PaymentStatus.PAID, {'payment_status': PaymentStatus.RELEASED})
    db.session.commit()


def _refund_funds(task):
    if not task.payment_intent_id:
        logger.warning(f'Task {task.id} canceled after acceptance without a payment intent')
        return
    try:
        get_gateway().refund(task.payment_intent_id)
    except UpstreamError:
        logger.error(
            f'Task {task.id} canceled but refunding payment {task.payment_intent_id} failed, '
            f'needs reconciliation',
            exc_info=True
        )
        return
    task_store.set_payment_status(task.id, PaymentStatus.PAID, {'payment_status': PaymentStatus.REFUNDED})
    db.session.commit()
