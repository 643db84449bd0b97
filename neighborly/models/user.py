"""User model: the local view of an identity from the auth provider."""

from neighborly import db
from neighborly.utils.timeutils import utcnow, utc_isoformat


class User(db.Model):
    """Poster and/or helper account.

    The id is the ``user_id`` claim of the caller's verified token, so rows
    are created lazily the first time a user touches the API.
    """

    __tablename__ = 'users'

    id = db.Column(db.String(64), primary_key=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    name = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    default_zip_code = db.Column(db.String(10), nullable=True)

    # Stripe Connect Express account used as the payout destination
    stripe_account_id = db.Column(db.String(255), nullable=True, unique=True)
    # Mirrors the account's charges_enabled and payouts_enabled from Stripe
    payouts_enabled = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def is_payout_ready(self):
        """True once the connected account has finished onboarding and can be paid."""
        return bool(self.stripe_account_id) and bool(self.payouts_enabled)

    @property
    def display_name(self):
        return self.name or 'Anonymous'

    @classmethod
    def get_or_create(cls, user_id):
        """Return the user row for ``user_id``, adding an empty one if missing.

        The new row is flushed, so rows referencing it can follow in the
        same transaction, but not committed.
        """
        user = db.session.get(cls, user_id)
        if user is None:
            user = cls(id=user_id)
            db.session.add(user)
            db.session.flush()
        return user

    def to_dict(self):
        """Convert user to dictionary."""
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'phone': self.phone,
            'default_zip_code': self.default_zip_code,
            'payouts_ready': self.is_payout_ready,
            'created_at': utc_isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.id}>'
