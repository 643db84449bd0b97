"""Chat routes between a task's poster and helper."""

from flask import Blueprint, request, jsonify

from neighborly.errors import NotFound, Forbidden
from neighborly.models import User
from neighborly.services import chat, task_store
from neighborly.utils import token_required

chat_bp = Blueprint('chat', __name__)


@chat_bp.route('/tasks/<task_id>/thread', methods=['GET'])
@token_required
def get_task_thread(current_user_id, task_id):
    """Get the chat thread of a task (exists once the task is accepted)."""
    task = task_store.get_task(task_id)
    if not task.is_party(current_user_id):
        raise Forbidden('Not authorized for this thread')

    thread = chat.get_thread_for_task(task.id)
    if thread is None:
        raise NotFound('Thread not found')
    return jsonify({'thread': thread.to_dict()}), 200


@chat_bp.route('/threads/<thread_id>', methods=['GET'])
@token_required
def get_thread(current_user_id, thread_id):
    """Get a thread with its messages, oldest first."""
    thread = chat.get_thread_for_participant(thread_id, current_user_id)
    return jsonify({
        'thread': thread.to_dict(),
        'messages': [message.to_dict() for message in thread.messages],
    }), 200


@chat_bp.route('/threads/<thread_id>/messages', methods=['POST'])
@token_required
def post_message(current_user_id, thread_id):
    """Send a message.

    Body:
        text: str (optional)
        image_url: str (optional, required for proof)
        is_proof: bool - Marks the photo as proof of completion
    """
    data = request.get_json(silent=True) or {}
    sender = User.get_or_create(current_user_id)
    message = chat.post_message(
        thread_id,
        sender,
        text=data.get('text'),
        image_url=data.get('image_url'),
        is_proof=data.get('is_proof', False),
    )
    return jsonify({'message': message.to_dict()}), 201
