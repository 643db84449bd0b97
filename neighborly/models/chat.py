"""Chat thread and message models for poster/helper communication."""

from neighborly import db
from neighborly.utils.ids import generate_id
from neighborly.utils.timeutils import utcnow, utc_isoformat


class ChatThread(db.Model):
    """Conversation opened between poster and helper once a task is accepted."""

    __tablename__ = 'chat_threads'

    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    task_id = db.Column(db.String(32), db.ForeignKey('tasks.id'), nullable=False, unique=True, index=True)
    poster_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False, index=True)
    helper_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_closed = db.Column(db.Boolean, default=False, nullable=False)

    messages = db.relationship(
        'ChatMessage', backref='thread', lazy='dynamic',
        cascade='all, delete-orphan', order_by='ChatMessage.created_at'
    )

    def is_participant(self, user_id):
        return user_id in (self.poster_id, self.helper_id)

    def is_open(self, now=None):
        """Threads accept messages until closed or past their expiry."""
        now = now or utcnow()
        return not self.is_closed and now < self.expires_at

    def to_dict(self):
        """Convert thread to dictionary."""
        return {
            'id': self.id,
            'task_id': self.task_id,
            'poster_id': self.poster_id,
            'helper_id': self.helper_id,
            'created_at': utc_isoformat(self.created_at),
            'expires_at': utc_isoformat(self.expires_at),
            'is_closed': self.is_closed,
        }

    def __repr__(self):
        return f'<ChatThread {self.id}: Task {self.task_id}>'


class ChatMessage(db.Model):
    """Message within a thread; proof messages carry a completion photo."""

    __tablename__ = 'chat_messages'

    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    thread_id = db.Column(db.String(32), db.ForeignKey('chat_threads.id'), nullable=False, index=True)
    sender_id = db.Column(db.String(64), db.ForeignKey('users.id'), nullable=False, index=True)
    sender_name = db.Column(db.String(120), nullable=True)
    text = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    is_proof = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    def to_dict(self):
        """Convert message to dictionary."""
        return {
            'id': self.id,
            'thread_id': self.thread_id,
            'sender_id': self.sender_id,
            'sender_name': self.sender_name,
            'text': self.text,
            'image_url': self.image_url,
            'is_proof': self.is_proof,
            'created_at': utc_isoformat(self.created_at),
        }

    def __repr__(self):
        return f'<ChatMessage {self.id} in Thread {self.thread_id}>'
