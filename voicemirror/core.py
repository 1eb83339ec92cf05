import logging
from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from voicemirror.errors import MirrorError, UpstreamError
from voicemirror.providers import list_available_providers
from voicemirror.shared import Settings

logger = logging.getLogger(__name__)

core_bp = Blueprint('core', __name__)


def get_settings() -> Settings:
    return current_app.config['SETTINGS']


@core_bp.route('/favicon.ico')
def favicon():
    return '', 204


@core_bp.route('/api/health', methods=['GET'])
def health():
    settings = get_settings()
    return jsonify({"success": True, "providers": settings.to_dict()})


@core_bp.route('/api/providers', methods=['GET'])
def list_providers():
    settings = get_settings()
    providers = [dict(p, configured=settings.is_configured(p["name"])) for p in list_available_providers()]
    return jsonify({"success": True, "providers": providers})


@core_bp.app_errorhandler(MirrorError)
def handle_mirror_error(e: MirrorError):
    if isinstance(e, UpstreamError):
        logger.error("Upstream error from %s (%s): %s | detail=%r", e.provider, e.status_code, e, e.detail)
    elif e.http_status >= 500:
        logger.error("%s: %s", e.error_code, e)
    else:
        logger.info("%s: %s", e.error_code, e)
    return jsonify(e.to_dict()), e.http_status


@core_bp.app_errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    if isinstance(e, HTTPException):
        return jsonify({"error": e.name.lower().replace(' ', '_'), "message": e.description}), e.code
    logger.exception("Unhandled error")
    return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
