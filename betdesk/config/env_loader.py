"""
Environment file loading, run once before Settings reads os.environ.

Order: .env (never overrides real env vars), then .env.betdesk.local during
development, then BETDESK_ENV_FILE when set.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOCAL_ENV_FILE = '.env.betdesk.local'


def load_environment(root=PROJECT_ROOT):
    loaded = []
    if load_dotenv(root / '.env', override=False):
        loaded.append('.env')

    development = os.getenv('FLASK_ENV', 'development') == 'development'
    if development and os.getenv('BETDESK_SKIP_LOCAL_ENV') != '1':
        if load_dotenv(root / LOCAL_ENV_FILE, override=True):
            loaded.append(LOCAL_ENV_FILE)

    explicit = os.getenv('BETDESK_ENV_FILE')
    if explicit and load_dotenv(root / explicit, override=True):
        loaded.append(explicit)

    return loaded
