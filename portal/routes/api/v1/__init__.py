"""
Version 1 of the portal JSON API
"""
from flask import Blueprint, current_app, jsonify

api_bp = Blueprint('api_v1', __name__, url_prefix='/api/v1')


def register_api_blueprints(app):
    """Attach the schedules and attendance blueprints plus the index route"""
    # Imported here so route modules can import the app package freely
    from portal.routes.api.v1.schedules import bp as schedules_bp
    from portal.routes.api.v1.attendance import bp as attendance_bp

    for blueprint in (schedules_bp, attendance_bp, api_bp):
        app.register_blueprint(blueprint)

    app.logger.debug('API v1 registered: /api/v1/schedules, /api/v1/attendance')


@api_bp.route('/', methods=['GET'])
def api_index():
    """List every v1 route with its methods"""
    routes = sorted(
        (rule.rule, sorted(rule.methods - {'HEAD', 'OPTIONS'}))
        for rule in current_app.url_map.iter_rules()
        if rule.rule.startswith('/api/v1/') and rule.endpoint != 'api_v1.api_index'
    )
    return jsonify({
        'api_version': 'v1',
        'name': current_app.config.get('APP_NAME', 'Education Portal'),
        'authentication': 'Flask-Login session cookie',
        'routes': [{'path': path, 'methods': methods} for path, methods in routes],
    }), 200
