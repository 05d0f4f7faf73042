"""
Development server for the education portal.

    FLASK_CONFIG=development HOST=0.0.0.0 PORT=8080 python run.py
"""

import os
import sys
from portal import create_app

DEFAULT_PORT = 8080

config_name = os.environ.get('FLASK_CONFIG') or 'development'
app = create_app(config_name)


def resolve_port():
    """PORT from the environment, or the default when missing or out of range"""
    raw = os.environ.get('PORT', DEFAULT_PORT)
    try:
        port = int(raw)
    except ValueError:
        app.logger.warning(f'Ignoring non-numeric PORT={raw!r}, using {DEFAULT_PORT}')
        return DEFAULT_PORT
    if not 1024 <= port <= 65535:
        app.logger.warning(f'Ignoring out-of-range PORT={port}, using {DEFAULT_PORT}')
        return DEFAULT_PORT
    return port


if __name__ == '__main__':
    host = os.environ.get('HOST', '127.0.0.1')
    port = resolve_port()

    print(f"{app.config['APP_NAME']} [{config_name}] on http://{host}:{port} "
          f"(debug={app.config['DEBUG']}, timezone={app.config['TIMEZONE']})")

    try:
        app.run(host=host, port=port, debug=app.config['DEBUG'], use_reloader=app.config['DEBUG'])
    except KeyboardInterrupt:
        sys.exit(0)
