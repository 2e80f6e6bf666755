from rest_framework import permissions
import logging

logger = logging.getLogger('blinkspace')

class IsOwnerOrReadOnly(permissions.BasePermission):
    """
    Custom permission to only allow owners of an object to edit it.
    """
    owner_field = 'user'  # Default owner field name

    def has_object_permission(self, request, view, obj):
        # Read permissions are allowed to any request
        if request.method in permissions.SAFE_METHODS:
            return True

        # Write permissions are only allowed to the owner
        owner = getattr(obj, self.owner_field, None)
        if owner is None:
            logger.warning(f"Owner field '{self.owner_field}' not found on {obj.__class__.__name__}")
            return False

        return owner == request.user
