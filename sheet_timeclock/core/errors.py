from typing import List, Optional

class TimeclockError(Exception):
    """Base class for errors translated into the JSON response envelope"""
    
    status_code = 500
    default_message = "Internal server error"
    
    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)

class ValidationError(TimeclockError):
    status_code = 400
    default_message = "Invalid request"

class AuthError(TimeclockError):
    status_code = 401
    default_message = "Not authenticated"

class ForbiddenOperation(TimeclockError):
    status_code = 403
    default_message = "Admin access required"

class NotFoundError(TimeclockError):
    status_code = 404
    default_message = "Not found"

class DuplicateError(TimeclockError):
    status_code = 400
    default_message = "Already exists"

class AccessError(TimeclockError):
    """The external document metadata source refused or failed the lookup"""
    status_code = 400
    default_message = "Unable to access this Google Sheet"

class StoreError(TimeclockError):
    status_code = 500
    default_message = "Record store failure"
