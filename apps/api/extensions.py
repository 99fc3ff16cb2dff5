#!/usr/bin/env python3
"""
Flask extensions initialization
"""

from flask import current_app
from flask_talisman import Talisman
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


# Initialize extensions (without app)
talisman = Talisman()
limiter = Limiter(key_func=get_remote_address)


def get_store():
    """Store provider attached to the current app by create_app"""
    return current_app.extensions["store"]
