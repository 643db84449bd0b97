"""Task workflow/lifecycle routes (choose-helper, start, complete, cancel, dispute)."""

from flask import request, jsonify

from neighborly.routes.tasks import tasks_bp
from neighborly.services import lifecycle
from neighborly.utils import token_required


@tasks_bp.route('/<task_id>/choose-helper', methods=['POST'])
@token_required
def choose_helper(current_user_id, task_id):
    """Poster picks an offer; returns the checkout URL to fund the escrow.

    Body:
        offer_id: str - The offer being accepted

    The task stays 'requested' until the payment webhook confirms funds.
    """
    data = request.get_json(silent=True) or {}
    result = lifecycle.choose_helper(task_id, current_user_id, data.get('offer_id'))
    return jsonify({
        'checkout_url': result['checkout_url'],
        'session_id': result['session_id'],
        'task': result['task'].to_dict(viewer_id=current_user_id)
    }), 200


@tasks_bp.route('/<task_id>/start', methods=['POST'])
@token_required
def start_task(current_user_id, task_id):
    """Assigned helper starts work."""
    task = lifecycle.start_task(task_id, current_user_id)
    return jsonify({
        'message': 'Task started.',
        'task': task.to_dict(viewer_id=current_user_id)
    }), 200


@tasks_bp.route('/<task_id>/complete', methods=['POST'])
@token_required
def complete_task(current_user_id, task_id):
    """Poster or helper completes the task (proof photo needed when required)."""
    task = lifecycle.complete_task(task_id, current_user_id)
    return jsonify({
        'message': 'Task completed!',
        'task': task.to_dict(viewer_id=current_user_id)
    }), 200


@tasks_bp.route('/<task_id>/cancel', methods=['POST'])
@token_required
def cancel_task(current_user_id, task_id):
    """Cancel a requested or accepted task.

    Body:
        canceled_by: 'poster' | 'helper'
    """
    data = request.get_json(silent=True) or {}
    task = lifecycle.cancel_task(task_id, current_user_id, data.get('canceled_by'))
    return jsonify({
        'message': 'Task has been canceled.',
        'task': task.to_dict(viewer_id=current_user_id)
    }), 200


@tasks_bp.route('/<task_id>/dispute', methods=['POST'])
@token_required
def dispute_task(current_user_id, task_id):
    """Dispute a completed task.

    Body:
        reason: str - What went wrong (optional)
    """
    data = request.get_json(silent=True) or {}
    task = lifecycle.dispute_task(task_id, current_user_id, data.get('reason'))
    return jsonify({
        'message': 'Task has been disputed. Our team will review it.',
        'task': task.to_dict(viewer_id=current_user_id)
    }), 200
