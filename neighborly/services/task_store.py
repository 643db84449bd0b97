"""Task persistence helpers: lookups and compare-and-set transitions.

The tasks table is the single authority for lifecycle status. Every write
that depends on the current status goes through ``transition`` which issues

    UPDATE tasks SET ... WHERE id = :id AND status IN (:expected)

so a concurrent writer that already moved the task makes the update touch
zero rows instead of overwriting its result.
"""

import logging

from neighborly import db
from neighborly.errors import NotFound, InvalidState
from neighborly.models import Task

logger = logging.getLogger(__name__)


def get_task(task_id):
    """Fetch a task or raise NotFound."""
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFound('Task not found')
    return task


def lock_task(task_id):
    """Fetch a task with a row lock held until the transaction ends."""
    task = Task.query.filter_by(id=task_id).with_for_update().first()
    if task is None:
        raise NotFound('Task not found')
    return task


def get_task_by_session(session_id):
    """Task whose current checkout session is ``session_id``, or None."""
    if not session_id:
        return None
    return Task.query.filter_by(checkout_session_id=session_id).first()


def transition(task_id, expected, updates):
    """Apply ``updates`` only while the task status is one of ``expected``.

    Returns True when the row was updated. Does not commit, so callers can
    group further writes into the same transaction.
    """
    if isinstance(expected, str):
        expected = (expected,)
    rowcount = Task.query.filter(
        Task.id == task_id,
        Task.status.in_(expected)
    ).update(updates, synchronize_session='fetch')
    return rowcount == 1


def transition_or_raise(task_id, expected, updates):
    """``transition`` that raises InvalidState when the race was lost."""
    if not transition(task_id, expected, updates):
        logger.warning(f'Task {task_id} left {expected} before update {sorted(updates)} could apply')
        db.session.rollback()
        raise InvalidState('Task status changed concurrently, please refresh')


def set_payment_status(task_id, expected_payment_status, updates):
    """Update escrow fields only while payment status is still ``expected_payment_status``.

    Payment status moves independently of task status (a release can land
    after a dispute was opened), so this guard looks at payment status only.
    """
    rowcount = Task.query.filter(
        Task.id == task_id,
        Task.payment_status == expected_payment_status
    ).update(updates, synchronize_session='fetch')
    return rowcount == 1
