"""
TeacherDash API Routes
======================

All API route blueprints for the TeacherDash application.

Usage:
    from teacherdash.routes import register_routes
    register_routes(app)
"""
from .tasks_routes import tasks_bp
from .classes_routes import classes_bp
from .calendar_routes import calendar_bp
from .day_routes import day_bp
from .activities_routes import activities_bp
from .bellringer_routes import bellringer_bp
from .lesson_plan_routes import lesson_plan_bp
from .plans_routes import plans_bp
from .materials_routes import materials_bp
from .settings_routes import settings_bp
from .standards_routes import standards_bp
from .sub_routes import sub_bp
from .subdash_routes import subdash_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(tasks_bp)
    app.register_blueprint(classes_bp)
    app.register_blueprint(calendar_bp)
    app.register_blueprint(day_bp)
    app.register_blueprint(activities_bp)
    app.register_blueprint(bellringer_bp)
    app.register_blueprint(lesson_plan_bp)
    app.register_blueprint(plans_bp)
    app.register_blueprint(materials_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(standards_bp)
    app.register_blueprint(sub_bp)
    app.register_blueprint(subdash_bp)


__all__ = [
    'register_routes',
    'tasks_bp',
    'classes_bp',
    'calendar_bp',
    'day_bp',
    'activities_bp',
    'bellringer_bp',
    'lesson_plan_bp',
    'plans_bp',
    'materials_bp',
    'settings_bp',
    'standards_bp',
    'sub_bp',
    'subdash_bp',
]
