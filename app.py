"""
PolicyCompare - Flask Application
Serves the policy version comparison API.
"""
from typing import Optional

from flask import Flask, g, jsonify, request

from config_logging import APP_NAME, VERSION, AppConfig, StructuredLogger, get_config, get_logger
from policy_compare import init_policy_compare
from version_history import VersionHistoryDB

logger = get_logger('app')


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """Build the Flask application."""
    config = config or get_config()
    is_valid, errors = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    app = Flask(__name__)
    app.config['DEBUG'] = config.debug

    @app.before_request
    def assign_correlation_id():
        g.correlation_id = request.headers.get('X-Correlation-ID') or StructuredLogger.new_correlation_id()
        StructuredLogger.set_correlation_id(g.correlation_id)

    @app.after_request
    def add_correlation_header(response):
        response.headers['X-Correlation-ID'] = getattr(g, 'correlation_id', '')
        return response

    @app.route('/api/version', methods=['GET'])
    def version():
        """Application name and version"""
        return jsonify({'app': APP_NAME, 'version': VERSION})

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': {'code': 'NOT_FOUND', 'message': 'Resource not found'}
        }), 404

    init_policy_compare(app, config, VersionHistoryDB(config.db_path))
    logger.info(f"{APP_NAME} {VERSION} initialized", db_path=config.db_path)
    return app


if __name__ == '__main__':
    config = get_config()
    print("=" * 60)
    print(f"  {APP_NAME} {VERSION}")
    print(f"  Starting server at http://{config.host}:{config.port}")
    print("=" * 60)
    create_app(config).run(host=config.host, port=config.port, debug=config.debug)
