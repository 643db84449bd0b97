"""Helper offer routes."""

from flask import request, jsonify

from neighborly.routes.tasks import tasks_bp
from neighborly.services import lifecycle
from neighborly.utils import token_required


@tasks_bp.route('/<task_id>/offers', methods=['POST'])
@token_required
def submit_offer(current_user_id, task_id):
    """Make an offer on a requested task.

    Body:
        note: str - Message to the poster (optional)
        proposed_price: number - Counter price (optional, informational)
    """
    offer = lifecycle.submit_offer(task_id, current_user_id, request.get_json(silent=True))
    return jsonify({
        'message': 'Offer submitted successfully',
        'offer': offer.to_dict()
    }), 201


@tasks_bp.route('/<task_id>/offers', methods=['GET'])
@token_required
def get_task_offers(current_user_id, task_id):
    """List offers: every offer for the poster, the caller's own for helpers."""
    offers = lifecycle.list_offers(task_id, current_user_id)
    return jsonify({
        'offers': [offer.to_dict() for offer in offers],
        'total': len(offers)
    }), 200
