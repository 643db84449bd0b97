from neighborly import db
from neighborly.utils.ids import generate_id
from neighborly.utils.timeutils import utcnow, utc_isoformat


class OfferStatus:
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    DECLINED = 'declined'

    ALL = (PENDING, ACCEPTED, DECLINED)


class Offer(db.Model):
    __tablename__ = 'offers'

    __table_args__ = (
        db.UniqueConstraint('task_id', 'helper_id', name='unique_task_offer'),
        db.CheckConstraint("status IN ('pending', 'accepted', 'declined')", name='ck_offers_status'),
        # At most one accepted offer per task
        db.Index(
            'uq_offers_one_accepted_per_task', 'task_id', unique=True,
            sqlite_where=db.text("status = 'accepted'"),
            postgresql_where=db.text("status = 'accepted'"),
        ),
    )

    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    task_id = db.Column(db.String(32), db.ForeignKey('tasks.id'), nullable=False, index=True)
    helper_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False, index=True)
    helper_name = db.Column(db.String(120), nullable=True)
    note = db.Column(db.Text, nullable=True)
    proposed_price = db.Column(db.Numeric(10, 2), nullable=True)
    status = db.Column(db.String(20), default=OfferStatus.PENDING, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'task_id': self.task_id,
            'helper_id': self.helper_id,
            'helper_name': self.helper_name,
            'note': self.note,
            'proposed_price': float(self.proposed_price) if self.proposed_price is not None else None,
            'status': self.status,
            'created_at': utc_isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<Offer {self.id} on Task {self.task_id} ({self.status})>'
