"""
Health check endpoint
"""
from flask import Blueprint, jsonify
from datetime import datetime, timezone

from flowrun.pieces import get_all_plugins

bp = Blueprint('health', __name__, url_prefix='/api')


@bp.route('/health', methods=['GET'])
def health_check():
    """Healthcheck endpoint to verify the API is online"""
    return jsonify({
        'status': 'healthy',
        'message': 'API is online',
        'plugins': len(get_all_plugins()),
        'timestamp': datetime.now(timezone.utc).isoformat()
    }), 200
