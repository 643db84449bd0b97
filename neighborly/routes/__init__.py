"""Routes package for the marketplace application."""


def register_routes(app):
    """Register all route blueprints with the application."""
    from .tasks import tasks_bp
    from .payments import payments_bp
    from .messages import chat_bp
    from .users import users_bp

    app.register_blueprint(tasks_bp, url_prefix='/api/tasks')
    app.register_blueprint(payments_bp, url_prefix='/api/payments')
    app.register_blueprint(chat_bp, url_prefix='/api/chat')
    app.register_blueprint(users_bp, url_prefix='/api/users')
