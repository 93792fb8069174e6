import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """
    Configuration class
    """
    FLASK_HOST = os.getenv('FLASK_RUN_HOST', "localhost")
    FLASK_PORT = os.getenv('FLASK_RUN_PORT', "5000")
    DEBUG = os.getenv('FLASK_DEBUG', False)

    PUBLIC_URL = os.getenv('PUBLIC_URL', "")  # overrides the host seen in requests when building proxy urls
    API_PREFIX = os.getenv('API_PREFIX', "/api")

    # Upstream (Bilibili) settings
    BILIBILI_API_URL = os.getenv('BILIBILI_API_URL', "https://api.bilibili.com")
    BILIBILI_REFERER = os.getenv('BILIBILI_REFERER', "https://www.bilibili.com")
    USER_AGENT = os.getenv(
        'USER_AGENT',
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/91.0.4472.124 Safari/537.36"
    )
    UPSTREAM_TIMEOUT = float(os.getenv('UPSTREAM_TIMEOUT', 5))  # seconds, per upstream call
    STREAM_TIMEOUT = float(os.getenv('STREAM_TIMEOUT', 30))  # seconds, media passthrough read timeout
    STREAM_CHUNK_SIZE = int(os.getenv('STREAM_CHUNK_SIZE', 64 * 1024))
    # hostname suffixes the media passthrough may reach, comma separated
    STREAM_ALLOWED_HOSTS = [
        host.strip().lower() for host in
        os.getenv('STREAM_ALLOWED_HOSTS', ".bilivideo.com,.bilivideo.cn,.akamaized.net,.hdslb.com").split(',')
        if host.strip()
    ]

    # Env dependent configs
    if DEBUG in ["1", True, "True"]:  # Local development
        PROTOCOL = "http"
        REDIRECT_URL = f"{FLASK_HOST}:{FLASK_PORT}"
    else:  # Production environment
        PROTOCOL = "https"
        REDIRECT_URL = f"{FLASK_HOST}"
