"""
Request payload helpers shared by the JSON blueprints.
"""

from typing import Any, Dict

from flask import request

from services.errors import ValidationError


def json_body() -> Dict[str, Any]:
    """The request's JSON object; an empty or missing body reads as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data
