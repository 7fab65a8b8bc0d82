"""
Policy Comparison Flask Routes
==============================
API endpoints for version listing, version commits, comparisons and
comparison history.
"""

import time
from functools import wraps
from flask import Blueprint, current_app, g, jsonify, request

from config_logging import (
    AppConfig,
    NotFoundError,
    PolicyCompareError,
    ValidationError,
    get_logger,
)
from .html_render import generate_side_by_side_html, generate_unified_diff_html
from .models import DiffOptions, UserIdentity
from .service import PolicyComparisonService, default_identity
from .store import VersionStore

logger = get_logger('policy_compare.routes')

# Create blueprint
pc_blueprint = Blueprint('policy_compare', __name__)


# =============================================================================
# STANDARDIZED ERROR HANDLING DECORATOR
# =============================================================================

def _error_response(code: str, message: str, status: int):
    return jsonify({
        'success': False,
        'error': {
            'code': code,
            'message': message,
            'correlation_id': getattr(g, 'correlation_id', 'unknown')
        }
    }), status


def handle_pc_errors(f):
    """
    Decorator for standardized API error handling in comparison routes.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        start_time = time.time()
        try:
            result = f(*args, **kwargs)

            elapsed = time.time() - start_time
            if elapsed > 5.0:
                logger.warning(f"Slow comparison API call: {f.__name__} took {elapsed:.1f}s")

            return result

        except ValidationError as e:
            logger.warning(f"Validation error in {f.__name__}: {e}")
            return _error_response(e.code, str(e), e.status_code)
        except NotFoundError as e:
            logger.warning(f"Not found in {f.__name__}: {e}")
            return _error_response(e.code, str(e), e.status_code)
        except PolicyCompareError as e:
            logger.error(f"Error in {f.__name__}: {e}")
            return _error_response(e.code, str(e), e.status_code)
        except Exception as e:
            logger.exception(f"Unexpected error in {f.__name__}: {e}")
            return _error_response('INTERNAL_ERROR', 'An unexpected error occurred', 500)

    return decorated


# =============================================================================
# SERVICE WIRING
# =============================================================================

def _current_user() -> UserIdentity:
    """Identity from trusted headers, falling back to the OS user."""
    name = request.headers.get('X-User-Name')
    if not name:
        return default_identity()

    raw_id = request.headers.get('X-User-Id')
    try:
        user_id = int(raw_id) if raw_id else None
    except ValueError:
        raise ValidationError("X-User-Id must be an integer", field='X-User-Id')
    return UserIdentity(user_id, name)


def init_policy_compare(app, config: AppConfig, store: VersionStore, url_prefix: str = '/api/compare'):
    """
    Attach the comparison API to an app.

    The config and store are shared by every request the app serves.
    """
    app.extensions['policy_compare'] = {'config': config, 'store': store}
    app.register_blueprint(pc_blueprint, url_prefix=url_prefix)


def _get_service() -> PolicyComparisonService:
    state = current_app.extensions['policy_compare']
    user = _current_user()
    return PolicyComparisonService(
        state['store'],
        identity_provider=lambda: user,
        config=state['config']
    )


def _get_json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _get_options(data: dict) -> DiffOptions:
    options = data.get('options')
    if options is not None and not isinstance(options, dict):
        raise ValidationError("options must be a JSON object", field='options')
    return DiffOptions.from_dict(options)


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if value is None:
        raise ValidationError(f"{key} is required", field=key)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer", field=key)


# =============================================================================
# API ENDPOINTS
# =============================================================================

@pc_blueprint.route('/documents/<int:doc_id>/versions', methods=['GET'])
@handle_pc_errors
def get_document_versions(doc_id: int):
    """
    List versions of a document, newest first.

    Returns:
        { success: true, versions: [...], count }
    """
    versions = _get_service().get_document_versions(doc_id)
    return jsonify({
        'success': True,
        'versions': [v.to_dict(include_content=False) for v in versions],
        'count': len(versions)
    })


@pc_blueprint.route('/documents/<int:doc_id>/versions', methods=['POST'])
@handle_pc_errors
def create_document_version(doc_id: int):
    """
    Commit new content as the next version.

    Request body:
        { content: str, change_notes?: str }
    """
    data = _get_json_body()
    content = data.get('content')
    if not isinstance(content, str):
        raise ValidationError("content is required", field='content')

    version = _get_service().create_version(doc_id, content, data.get('change_notes'))
    return jsonify({'success': True, 'version': version.to_dict(include_content=False)}), 201


@pc_blueprint.route('/diff', methods=['POST'])
@handle_pc_errors
def compare_versions():
    """
    Compare two committed versions.

    Request body:
        { source_version_id: int, target_version_id: int, options?: {...} }

    Returns:
        { success: true, comparison: {...}, html: str }
    """
    data = _get_json_body()
    source_id = _require_int(data, 'source_version_id')
    target_id = _require_int(data, 'target_version_id')
    options = _get_options(data)

    result = _get_service().compare_versions(source_id, target_id, options)
    return jsonify({
        'success': True,
        'comparison': result.to_dict(),
        'html': generate_unified_diff_html(result)
    })


@pc_blueprint.route('/diff/current', methods=['POST'])
@handle_pc_errors
def compare_current():
    """
    Preview a document's live content against a committed version.

    Request body:
        { document_id: int, version_id: int, options?: {...} }
    """
    data = _get_json_body()
    document_id = _require_int(data, 'document_id')
    version_id = _require_int(data, 'version_id')
    options = _get_options(data)

    result = _get_service().compare_with_version(document_id, version_id, options)
    return jsonify({
        'success': True,
        'comparison': result.to_dict(),
        'html': generate_unified_diff_html(result)
    })


@pc_blueprint.route('/side-by-side', methods=['POST'])
@handle_pc_errors
def side_by_side():
    """
    Aligned rows of two versions.

    Request body:
        { left_version_id: int, right_version_id: int, options?: {...} }
    """
    data = _get_json_body()
    left_id = _require_int(data, 'left_version_id')
    right_id = _require_int(data, 'right_version_id')
    options = _get_options(data)

    view = _get_service().get_side_by_side_view(left_id, right_id, options)
    return jsonify({
        'success': True,
        'view': view.to_dict(),
        'html': generate_side_by_side_html(view)
    })


@pc_blueprint.route('/documents/<int:doc_id>/history', methods=['GET'])
@handle_pc_errors
def get_comparison_history(doc_id: int):
    """Past comparisons for a document, newest first."""
    records = _get_service().get_comparison_history(doc_id)
    return jsonify({
        'success': True,
        'history': [r.to_dict() for r in records],
        'count': len(records)
    })


@pc_blueprint.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'success': True,
        'module': 'policy_compare',
        'version': '1.0.0',
        'status': 'healthy'
    })
