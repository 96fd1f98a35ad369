from typing import Any, List, Optional

def envelope(data: Any = None, message: Optional[str] = None, errors: Optional[List[str]] = None, success: bool = True) -> dict:
    """Build the ``{success, data?, message?, errors?}`` body every route returns"""
    body = {"success": success}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    if errors:
        body["errors"] = errors
    return body
