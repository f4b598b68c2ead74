"""
Pieces API - Routes for built-in node plugin metadata

Endpoints:
- GET /api/v1/pieces - List all node plugins
- GET /api/v1/pieces/:type - Get plugin details
"""

from flask import Blueprint, request, jsonify
import logging

from flowrun.pieces import get_all_plugins, get_plugin

logger = logging.getLogger(__name__)

pieces_bp = Blueprint('pieces', __name__, url_prefix='/api/v1/pieces')


@pieces_bp.route('', methods=['GET'])
def list_pieces():
    """
    List all available node plugins.

    Query params:
        category: Filter by category (optional)
    """
    category = request.args.get('category')

    pieces_data = [
        plugin.to_dict()
        for _, plugin in sorted(get_all_plugins().items())
        if not category or plugin.category == category
    ]

    return jsonify({
        'pieces': pieces_data,
        'count': len(pieces_data)
    }), 200


@pieces_bp.route('/<node_type>', methods=['GET'])
def get_piece(node_type):
    """Get detailed information about a node plugin."""
    plugin = get_plugin(node_type)
    if not plugin:
        return jsonify({'error': 'Piece not found'}), 404

    return jsonify(plugin.to_dict()), 200
