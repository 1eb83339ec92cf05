"""
Voice Mirror - Flask Backend
Speech-to-text, LLM reflection and cloned-voice text-to-speech
"""

import logging
import os

from flask import Flask

from voicemirror.core import core_bp
from voicemirror.reflect import reflect_bp
from voicemirror.shared import Settings, load_settings
from voicemirror.voice import voice_bp

# 60 s of 16 kHz WAV plus multipart overhead
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def create_app(settings: Settings = None) -> Flask:
    settings = settings or load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    flask_app = Flask(__name__)
    flask_app.config['SETTINGS'] = settings
    flask_app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES

    flask_app.register_blueprint(core_bp)
    flask_app.register_blueprint(voice_bp)
    flask_app.register_blueprint(reflect_bp)
    return flask_app


app = create_app()


if __name__ == '__main__':
    app.run(debug=False, host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), use_reloader=False)
