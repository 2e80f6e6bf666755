from django.conf import settings
from rest_framework import serializers
from blinkspace.serializers import TimeStampedModelSerializer
from blinkspace.validators import count_words
from .models import Blink
import logging

logger = logging.getLogger('blinkspace')


class BlinkAuthorSerializer(serializers.Serializer):
    """Author name and email as shown in the feed"""
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)


class BlinkSerializer(TimeStampedModelSerializer):
    """
    Serializer for Blink model. Media is write-only on input and exposed
    as an absolute media_url on output.
    """
    user = BlinkAuthorSerializer(read_only=True)
    media_url = serializers.SerializerMethodField()

    class Meta(TimeStampedModelSerializer.Meta):
        model = Blink
        fields = [
            'id', 'user', 'content', 'likes', 'comments',
            'media', 'media_url', 'media_type',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'user', 'likes', 'comments', 'media_type', 'created_at', 'updated_at']
        extra_kwargs = {
            'media': {'write_only': True, 'required': False, 'allow_null': True},
        }

    def get_media_url(self, obj):
        if not obj.media:
            return None
        request = self.context.get('request')
        url = obj.media.url
        return request.build_absolute_uri(url) if request else url

    def validate_content(self, value):
        max_words = settings.BLINK_MAX_WORDS
        if count_words(value) > max_words:
            raise serializers.ValidationError(f"Blink cannot exceed {max_words} words.")
        return value

    def create(self, validated_data):
        media = validated_data.get('media')
        validated_data['media_type'] = Blink.media_type_for(
            getattr(media, 'content_type', None) if media else None
        )
        blink = super().create(validated_data)
        logger.info(f"Blink {blink.pk} created with media type {blink.media_type}")
        return blink
