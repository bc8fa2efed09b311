#!/usr/bin/env python3
import logging

from betdesk.main import create_app
from betdesk.settings import settings

app = create_app()

if __name__ == "__main__":
    settings.print_config()
    logging.getLogger(__name__).info(f"Starting Flask app on {settings.HOST}:{settings.PORT}...")
    app.run(
        host=settings.HOST,
        port=settings.PORT,
        debug=settings.DEBUG,
        use_reloader=False,
    )
