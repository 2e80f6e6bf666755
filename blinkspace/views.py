from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated
from .permissions import IsOwnerOrReadOnly
from django.db import transaction
import logging

logger = logging.getLogger('blinkspace')

class BaseModelViewSet(viewsets.ModelViewSet):
    """
    Base viewset that implements common functionality and error handling.
    """
    permission_classes = [IsAuthenticated, IsOwnerOrReadOnly]
    owner_field = 'user'

    def get_queryset(self):
        """
        Filter queryset based on request parameters.
        """
        queryset = super().get_queryset()

        # Add request to logging context
        logger.info(f"Fetching {self.queryset.model.__name__} objects for {self.request.user}")

        return queryset

    def perform_create(self, serializer):
        """
        Set the owner when creating an object.
        """
        try:
            with transaction.atomic():
                serializer.save(**{self.owner_field: self.request.user})
                logger.info(f"Created {serializer.Meta.model.__name__} object for {self.request.user}")
        except Exception as e:
            logger.error(f"Error creating {serializer.Meta.model.__name__}: {str(e)}")
            raise

    def perform_update(self, serializer):
        """
        Update an object with transaction and logging.
        """
        try:
            with transaction.atomic():
                serializer.save()
                logger.info(f"Updated {serializer.Meta.model.__name__} object: {serializer.instance.pk}")
        except Exception as e:
            logger.error(f"Error updating {serializer.Meta.model.__name__}: {str(e)}")
            raise

    def perform_destroy(self, instance):
        """
        Delete an object with transaction and logging.
        """
        try:
            with transaction.atomic():
                result = super().perform_destroy(instance)
                logger.info(f"Deleted {instance.__class__.__name__} object: {instance.pk}")
                return result
        except Exception as e:
            logger.error(f"Error deleting {instance.__class__.__name__}: {str(e)}")
            raise


class BaseReadOnlyViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Base viewset for read-only operations.
    """
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        """
        Filter queryset based on request parameters.
        """
        queryset = super().get_queryset()

        # Add request to logging context
        logger.info(f"Fetching {self.queryset.model.__name__} objects for {self.request.user}")

        return queryset
