"""
ETag Helper

Adds ETag headers to JSON GET responses and answers 304 Not Modified when the
client's If-None-Match matches, so task-list views can poll cheaply after a save.
"""

import hashlib
import json
from flask import request, Response, make_response
from functools import wraps
from typing import Any, Callable


def generate_etag(data: Any) -> str:
    """
    Generate ETag (checksum) from data.

    Args:
        data: Any JSON-serializable data

    Returns:
        str: quoted MD5 hex digest of the canonical JSON
    """
    json_str = json.dumps(data, sort_keys=True, default=str)
    md5_hash = hashlib.md5(json_str.encode('utf-8')).hexdigest()
    return f'"{md5_hash}"'


def with_etag(f: Callable) -> Callable:
    """
    Decorator to add ETag support to Flask routes returning JSON.

    Non-200 and non-JSON responses pass through untouched.

    Usage:
        @bp.route('/api/data')
        @with_etag
        def get_data():
            return jsonify({'data': ...})
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = make_response(f(*args, **kwargs))
        if not isinstance(response, Response) or response.status_code != 200 or not response.is_json:
            return response

        etag = generate_etag(response.get_json())
        if request.headers.get('If-None-Match') == etag:
            not_modified = make_response('', 304)
            not_modified.headers['ETag'] = etag
            not_modified.headers['Cache-Control'] = 'no-cache'
            return not_modified

        response.headers['ETag'] = etag
        response.headers['Cache-Control'] = 'no-cache'
        return response

    return decorated_function
