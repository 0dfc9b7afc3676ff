from flask import request

from services.errors import ValidationError


def json_body() -> dict:
    """The request's JSON object, or {} when there is no body."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON body")
    return data
