"""Task model: the unit of work a poster pays a helper to do."""

from dataclasses import dataclass
from datetime import datetime

from neighborly import db
from neighborly.utils.ids import generate_id, generate_confirmation_code
from neighborly.utils.timeutils import utcnow, utc_isoformat


class TaskStatus:
    REQUESTED = 'requested'
    ACCEPTED = 'accepted'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELED = 'canceled'
    DISPUTED = 'disputed'

    ALL = (REQUESTED, ACCEPTED, IN_PROGRESS, COMPLETED, CANCELED, DISPUTED)
    # Statuses in which a helper is bound to the task
    ASSIGNED = (ACCEPTED, IN_PROGRESS, COMPLETED, DISPUTED)
    TERMINAL = (COMPLETED, CANCELED, DISPUTED)


class PaymentStatus:
    PENDING = 'pending'      # no funds secured yet
    PAID = 'paid'            # checkout completed, funds held
    RELEASED = 'released'    # captured for the helper after completion
    REFUNDED = 'refunded'    # returned to the poster

    ALL = (PENDING, PAID, RELEASED, REFUNDED)


class CanceledBy:
    POSTER = 'poster'
    HELPER = 'helper'

    ALL = (POSTER, HELPER)


@dataclass(frozen=True)
class Assignment:
    """The helper binding of a task that went through acceptance."""

    helper_id: str
    helper_name: str
    accepted_at: datetime


@dataclass(frozen=True)
class EscrowSplit:
    """Amounts in cents, fixed when the helper was chosen."""

    total_cents: int
    fee_cents: int
    helper_cents: int


def _in_list(column, values):
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Task(db.Model):
    """Task posted by a poster, optionally bound to one helper."""

    __tablename__ = 'tasks'

    __table_args__ = (
        db.CheckConstraint('price > 0', name='ck_tasks_price_positive'),
        db.CheckConstraint(_in_list('status', TaskStatus.ALL), name='ck_tasks_status'),
        db.CheckConstraint(_in_list('payment_status', PaymentStatus.ALL), name='ck_tasks_payment_status'),
        # A helper is bound exactly when acceptance happened
        db.CheckConstraint('(helper_id IS NULL) = (accepted_at IS NULL)', name='ck_tasks_helper_bound_on_accept'),
        db.CheckConstraint("status != 'requested' OR helper_id IS NULL", name='ck_tasks_requested_unassigned'),
    )

    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(50), nullable=False, index=True)
    zip_code = db.Column(db.String(10), nullable=False, index=True)
    area_description = db.Column(db.String(255), nullable=False)
    full_address = db.Column(db.String(500), nullable=False)  # private until a helper is bound
    # Four places so fractional cents survive until the escrow split rounds them
    price = db.Column(db.Numeric(12, 4), nullable=False)
    photos_required = db.Column(db.Boolean, default=False, nullable=False)
    confirmation_code = db.Column(db.String(12), nullable=False, default=generate_confirmation_code)

    # Parties
    poster_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False, index=True)
    poster_name = db.Column(db.String(120), nullable=True)
    helper_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=True, index=True)
    helper_name = db.Column(db.String(120), nullable=True)

    status = db.Column(db.String(20), default=TaskStatus.REQUESTED, nullable=False, index=True)

    # Escrow linkage
    checkout_session_id = db.Column(db.String(255), nullable=True, unique=True, index=True)
    chosen_offer_id = db.Column(db.String(32), nullable=True)
    payment_intent_id = db.Column(db.String(255), nullable=True)
    charge_id = db.Column(db.String(255), nullable=True)
    platform_fee_amount = db.Column(db.Integer, nullable=True)  # cents
    helper_amount = db.Column(db.Integer, nullable=True)  # cents
    payment_status = db.Column(db.String(20), default=PaymentStatus.PENDING, nullable=False)

    # Timestamps, each written once
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    accepted_at = db.Column(db.DateTime, nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    canceled_at = db.Column(db.DateTime, nullable=True)
    disputed_at = db.Column(db.DateTime, nullable=True)

    canceled_by = db.Column(db.String(10), nullable=True)
    dispute_reason = db.Column(db.Text, nullable=True)

    offers = db.relationship(
        'Offer', backref='task', lazy='dynamic',
        cascade='all, delete-orphan', order_by='Offer.created_at'
    )

    @property
    def assignment(self):
        """Helper binding, or None while no helper was accepted."""
        if self.helper_id is None or self.accepted_at is None:
            return None
        return Assignment(
            helper_id=self.helper_id,
            helper_name=self.helper_name or 'Helper',
            accepted_at=self.accepted_at,
        )

    @property
    def escrow(self):
        """Escrow split, or None before a helper was chosen."""
        if self.platform_fee_amount is None or self.helper_amount is None:
            return None
        return EscrowSplit(
            total_cents=self.platform_fee_amount + self.helper_amount,
            fee_cents=self.platform_fee_amount,
            helper_cents=self.helper_amount,
        )

    def is_party(self, user_id):
        """True when ``user_id`` is the poster or the bound helper."""
        if user_id is None:
            return False
        return user_id == self.poster_id or (self.helper_id is not None and user_id == self.helper_id)

    def to_dict(self, viewer_id=None):
        """Convert task to dictionary.

        ``full_address`` is only included for the poster and the bound helper.
        """
        escrow = self.escrow
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'category': self.category,
            'zip_code': self.zip_code,
            'area_description': self.area_description,
            'full_address': self.full_address if self.is_party(viewer_id) else None,
            'price': float(self.price),
            'photos_required': self.photos_required,
            'confirmation_code': self.confirmation_code if self.is_party(viewer_id) else None,
            'status': self.status,
            'poster_id': self.poster_id,
            'poster_name': self.poster_name,
            'helper_id': self.helper_id,
            'helper_name': self.helper_name,
            'payment_status': self.payment_status,
            'platform_fee_amount': escrow.fee_cents if escrow else None,
            'helper_amount': escrow.helper_cents if escrow else None,
            'created_at': utc_isoformat(self.created_at),
            'accepted_at': utc_isoformat(self.accepted_at),
            'started_at': utc_isoformat(self.started_at),
            'completed_at': utc_isoformat(self.completed_at),
            'canceled_at': utc_isoformat(self.canceled_at),
            'canceled_by': self.canceled_by,
            'disputed_at': utc_isoformat(self.disputed_at),
        }

    def __repr__(self):
        return f'<Task {self.id}: {self.title} ({self.status})>'
