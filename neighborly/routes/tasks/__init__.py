"""Task routes package.

This package organizes task-related routes into logical submodules:
- crud: Posting and reading tasks (create, list, get, mine)
- offers: Helper offers (submit, list)
- workflow: Task lifecycle (choose-helper, start, complete, cancel, dispute)
"""

from flask import Blueprint

tasks_bp = Blueprint('tasks', __name__)

# Import and register all route modules
from neighborly.routes.tasks import crud  # noqa: E402,F401
from neighborly.routes.tasks import offers  # noqa: E402,F401
from neighborly.routes.tasks import workflow  # noqa: E402,F401
