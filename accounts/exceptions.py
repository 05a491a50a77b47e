from django.core.exceptions import ObjectDoesNotExist, PermissionDenied


class Unauthorized(PermissionDenied):
    """No authenticated principal on the request."""


class NotFound(ObjectDoesNotExist):
    def __init__(self, resource: str = "Resource"):
        self.resource = resource
        super().__init__(f"{resource} not found.")


class Conflict(Exception):
    """The entity's current state does not allow the requested transition."""
