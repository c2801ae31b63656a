from flask import current_app

EXTENSION_KEY = 'bastion'


def get_service():
    """The DispatchService owned by the current app."""
    return current_app.extensions[EXTENSION_KEY]
