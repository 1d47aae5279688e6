from flask import current_app

from services import Services

EXTENSION_KEY = "treenetra"


def get_services() -> Services:
    """Components wired by create_app() for the current application."""
    return current_app.extensions[EXTENSION_KEY]
