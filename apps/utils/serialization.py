from typing import Any

import orjson
from starlette.responses import JSONResponse


def serialize_json(data: Any) -> bytes:
    """
    Serialize data to JSON using orjson

    Args:
        data: Data to serialize

    Returns:
        JSON bytes
    """
    return orjson.dumps(data, option=orjson.OPT_NAIVE_UTC)


def deserialize_json(data: bytes | str) -> Any:
    """
    Deserialize JSON data using orjson

    Args:
        data: JSON bytes or string

    Returns:
        Deserialized Python object

    Raises:
        orjson.JSONDecodeError: If the payload is not valid JSON
    """
    return orjson.loads(data)


class OrjsonResponse(JSONResponse):
    """JSON response rendered with orjson"""

    def render(self, content: Any) -> bytes:
        return serialize_json(content)
