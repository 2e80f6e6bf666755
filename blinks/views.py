from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from blinkspace.views import BaseModelViewSet
from .models import Blink
from .serializers import BlinkSerializer
import logging

logger = logging.getLogger('blinkspace')


class BlinkViewSet(BaseModelViewSet):
    """
    API viewset for the blink feed. Anyone signed in can read every blink;
    only the author can delete one. Blinks are not editable.
    """
    queryset = Blink.objects.select_related('user')
    serializer_class = BlinkSerializer
    parser_classes = [MultiPartParser, FormParser, JSONParser]
    pagination_class = None
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    def perform_destroy(self, instance):
        media = instance.media.name if instance.media else None
        super().perform_destroy(instance)
        if media:
            # Row is gone, the file goes with it
            instance.media.storage.delete(media)
            logger.info(f"Removed media file {media}")
