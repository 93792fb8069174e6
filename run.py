import logging
import sys

from flask import Flask
from flask_compress import Compress

from bili_proxy.routes.stream import stream_bp
from bili_proxy.routes.utils import respond_with
from bili_proxy.routes.video import video_bp
from config import Config
from version import __version__


def create_app() -> Flask:
    app = Flask(__name__)
    app.config.from_object('config.Config')

    app.register_blueprint(video_bp, url_prefix=Config.API_PREFIX)
    app.register_blueprint(stream_bp, url_prefix=Config.API_PREFIX)

    Compress(app)

    @app.route('/')
    def index():
        """
        Describe the service
        """
        base = f'{Config.PROTOCOL}://{Config.REDIRECT_URL}{Config.API_PREFIX}/proxy/bilibili'
        return respond_with({
            'name': 'bilibili-dash-proxy',
            'version': __version__,
            'manifest_url': f'{base}/video-manifest?bvid={{bvid}}',
            'stream_url': f'{base}/stream?url={{url}}&id={{bvid}}',
        })

    return app


app = create_app()


if __name__ == '__main__':
    from waitress import serve

    # Configure logging to stdout
    logging.basicConfig(
        format='%(asctime)s %(levelname)s: %(message)s',
        level=logging.DEBUG if Config.DEBUG in ["1", True, "True"] else logging.INFO,
        stream=sys.stdout,
        force=True
    )

    logging.info(f"Starting Bilibili DASH proxy v{__version__} on http://0.0.0.0:{Config.FLASK_PORT}")
    serve(app, host='0.0.0.0', port=int(Config.FLASK_PORT))
