"""Chat collaborator: thread creation and the proof-of-completion check."""

from datetime import timedelta

from flask import current_app

from neighborly import db
from neighborly.errors import NotFound, Forbidden, InvalidState, InvalidInput
from neighborly.models import ChatThread, ChatMessage
from neighborly.utils.timeutils import utcnow

MAX_MESSAGE_LENGTH = 4000
MAX_IMAGE_URL_LENGTH = 500  # chat_messages.image_url column size


def create_thread(task_id, poster_id, helper_id):
    """Open the thread for a task. Added to the session, not committed."""
    now = utcnow()
    thread = ChatThread(
        task_id=task_id,
        poster_id=poster_id,
        helper_id=helper_id,
        created_at=now,
        expires_at=now + timedelta(hours=current_app.config['CHAT_THREAD_TTL_HOURS']),
        is_closed=False,
    )
    db.session.add(thread)
    return thread


def get_thread_for_task(task_id):
    return ChatThread.query.filter_by(task_id=task_id).first()


def has_proof_message(thread_id):
    """True when the thread holds a message flagged as proof with an image."""
    return db.session.query(
        ChatMessage.query.filter(
            ChatMessage.thread_id == thread_id,
            ChatMessage.is_proof.is_(True),
            ChatMessage.image_url.isnot(None),
            ChatMessage.image_url != '',
        ).exists()
    ).scalar()


def get_thread_for_participant(thread_id, user_id):
    thread = db.session.get(ChatThread, thread_id)
    if thread is None:
        raise NotFound('Thread not found')
    if not thread.is_participant(user_id):
        raise Forbidden('Not authorized for this thread')
    return thread


def post_message(thread_id, sender, text=None, image_url=None, is_proof=False):
    """Store a message from a thread participant and commit it."""
    thread = get_thread_for_participant(thread_id, sender.id)
    if not thread.is_open():
        raise InvalidState('This chat is closed')
    if text is not None and not isinstance(text, str):
        raise InvalidInput('Message text must be a string')
    if text and len(text) > MAX_MESSAGE_LENGTH:
        raise InvalidInput(f'text must be at most {MAX_MESSAGE_LENGTH} characters')
    if image_url is not None and not isinstance(image_url, str):
        raise InvalidInput('image_url must be a string')
    if image_url and len(image_url) > MAX_IMAGE_URL_LENGTH:
        raise InvalidInput(f'image_url must be at most {MAX_IMAGE_URL_LENGTH} characters')
    if not isinstance(is_proof, bool):
        raise InvalidInput('is_proof must be true or false')

    if not text and not image_url:
        raise InvalidInput('Message needs text or an image')
    if is_proof and not image_url:
        raise InvalidInput('Proof messages need an image')

    message = ChatMessage(
        thread_id=thread.id,
        sender_id=sender.id,
        sender_name=sender.name or 'User',
        text=text or None,
        image_url=image_url or None,
        is_proof=is_proof,
    )
    db.session.add(message)
    db.session.commit()
    return message
