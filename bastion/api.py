from flask_restx import Api


def build_api(title, description):
    """New Api per Flask app, so several apps can live in one process."""
    return Api(
        version='1.0',
        title=title,
        description=description,
        doc='/docs',
        prefix='/api/v1'
    )
