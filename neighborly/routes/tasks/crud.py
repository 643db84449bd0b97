"""Posting and reading tasks."""

from flask import request, jsonify

from neighborly.errors import InvalidInput
from neighborly.models import Task, TaskStatus, Offer, OfferStatus
from neighborly.constants import normalize_category
from neighborly.routes.tasks import tasks_bp
from neighborly.services import lifecycle, task_store
from neighborly.utils import token_required, token_optional
from neighborly import db

MAX_PER_PAGE = 100


def get_pending_offers_counts(task_ids):
    """
    Get pending offer count for multiple tasks in a SINGLE query.
    Returns dict mapping task_id -> count
    """
    if not task_ids:
        return {}

    results = db.session.query(
        Offer.task_id,
        db.func.count(Offer.id)
    ).filter(
        Offer.task_id.in_(task_ids),
        Offer.status == OfferStatus.PENDING
    ).group_by(Offer.task_id).all()

    counts = {task_id: 0 for task_id in task_ids}
    for task_id, count in results:
        counts[task_id] = count
    return counts


def serialize_tasks(tasks, viewer_id):
    task_ids = [task.id for task in tasks]
    pending_counts = get_pending_offers_counts(task_ids)
    tasks_list = []
    for task in tasks:
        task_dict = task.to_dict(viewer_id=viewer_id)
        task_dict['pending_offers_count'] = pending_counts.get(task.id, 0)
        tasks_list.append(task_dict)
    return tasks_list


@tasks_bp.route('', methods=['GET'])
@token_optional
def get_tasks(current_user_id):
    """Browse tasks.

    Query params:
        - status: Task status filter (default 'requested')
        - zip_code: Exact zip code
        - category: Category filter. Supports comma-separated values for
                    multi-category filtering (e.g. "cleaning,moving")
        - page, per_page: Pagination
    """
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', 20, type=int), MAX_PER_PAGE)
    status = request.args.get('status', TaskStatus.REQUESTED)
    zip_code = request.args.get('zip_code')
    category = request.args.get('category')

    if status not in TaskStatus.ALL:
        raise InvalidInput(f'Invalid status: {status}')

    query = Task.query.filter_by(status=status)

    if zip_code:
        query = query.filter_by(zip_code=zip_code.strip())

    if category:
        categories = []
        for raw in category.split(','):
            if not raw.strip():
                continue
            key = normalize_category(raw)
            if key is None:
                raise InvalidInput(f'Invalid category: {raw.strip()}')
            categories.append(key)
        if categories:
            query = query.filter(Task.category.in_(categories))

    tasks = query.order_by(Task.created_at.desc()).paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        'tasks': serialize_tasks(tasks.items, current_user_id),
        'total': tasks.total,
        'page': page,
        'per_page': per_page,
        'has_more': tasks.has_next,
    }), 200


@tasks_bp.route('/<task_id>', methods=['GET'])
@token_optional
def get_task(current_user_id, task_id):
    """Get a specific task by ID (full address only for its poster and helper)."""
    task = task_store.get_task(task_id)
    return jsonify(serialize_tasks([task], current_user_id)[0]), 200


@tasks_bp.route('', methods=['POST'])
@token_required
def create_task(current_user_id):
    """Post a new task.

    Body:
        title, description, category, zip_code, area_description,
        full_address: str
        price: number (>= the configured minimum)
        photos_required: bool (optional)
    """
    task = lifecycle.create_task(current_user_id, request.get_json(silent=True))
    return jsonify({
        'message': 'Task created successfully',
        'task': task.to_dict(viewer_id=current_user_id)
    }), 201


@tasks_bp.route('/created', methods=['GET'])
@token_required
def get_created_tasks(current_user_id):
    """Get tasks posted by the current user, with pending offer counts."""
    tasks = Task.query.filter(
        Task.poster_id == current_user_id
    ).order_by(Task.created_at.desc()).all()

    return jsonify({
        'tasks': serialize_tasks(tasks, current_user_id),
        'total': len(tasks)
    }), 200


@tasks_bp.route('/my', methods=['GET'])
@token_required
def get_my_tasks(current_user_id):
    """Get tasks the current user works on as helper, in any post-acceptance status."""
    tasks = Task.query.filter(
        Task.helper_id == current_user_id
    ).order_by(Task.accepted_at.desc()).all()

    return jsonify({
        'tasks': serialize_tasks(tasks, current_user_id),
        'total': len(tasks)
    }), 200
