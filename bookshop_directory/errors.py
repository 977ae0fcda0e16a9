"""
Error handlers for the application.
"""
from flask import Blueprint, jsonify
import logging

from bookshop_directory.data_store import EntityStoreError

logger = logging.getLogger(__name__)

bp = Blueprint('errors', __name__)


@bp.app_errorhandler(400)
def bad_request_error(error):
    """Handle 400 errors."""
    return jsonify({'error': 'Bad request'}), 400


@bp.app_errorhandler(403)
def forbidden_error(error):
    """Handle 403 errors."""
    return jsonify({'error': 'Access forbidden'}), 403


@bp.app_errorhandler(404)
def not_found_error(error):
    """Handle 404 errors."""
    return jsonify({'error': 'Page not found'}), 404


@bp.app_errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    logger.error(f"Internal error: {error}", exc_info=True)
    return jsonify({'error': 'An error occurred. Please try again later.'}), 500


@bp.app_errorhandler(EntityStoreError)
def data_store_error(error):
    """Handle data store outages."""
    logger.error(f"Data store error: {error}")
    return jsonify({'error': 'Directory data is temporarily unavailable.'}), 503
