from rest_framework import serializers
import logging

logger = logging.getLogger('blinkspace')

class BaseSerializer(serializers.ModelSerializer):
    """
    Base serializer with improved error handling.
    This serializer logs validation errors for debugging.
    """

    def is_valid(self, raise_exception=False):
        """
        Enhanced validation method that logs validation errors
        """
        valid = super().is_valid(raise_exception=False)

        if not valid and self.errors:
            logger.warning(
                f"Validation failed for {self.__class__.__name__}: {self.errors}"
            )

        if not valid and raise_exception:
            raise serializers.ValidationError(self.errors)

        return valid


class BaseInputSerializer(serializers.Serializer):
    """
    Base serializer for request bodies and path parameters that are not
    backed by a model. Logs validation failures the same way BaseSerializer does.
    """

    def is_valid(self, raise_exception=False):
        valid = super().is_valid(raise_exception=False)

        if not valid and self.errors:
            logger.warning(
                f"Validation failed for {self.__class__.__name__}: {self.errors}"
            )

        if not valid and raise_exception:
            raise serializers.ValidationError(self.errors)

        return valid


class TimeStampedModelSerializer(BaseSerializer):
    """
    Base serializer for models with created_at and updated_at fields.
    """
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)

    class Meta:
        fields = ['created_at', 'updated_at']
