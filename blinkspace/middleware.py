import time
import logging
import json
from django.utils.deprecation import MiddlewareMixin
from django.conf import settings

logger = logging.getLogger('blinkspace')

class RequestLogMiddleware(MiddlewareMixin):
    """
    Middleware that logs all requests including timing information.
    """
    def process_request(self, request):
        request.start_time = time.time()

    def process_response(self, request, response):
        if hasattr(request, 'start_time'):
            duration = time.time() - request.start_time

            # Get user info
            user = None
            user_id = None
            if hasattr(request, 'user') and request.user.is_authenticated:
                user = request.user.email
                user_id = request.user.id

            log_data = {
                'method': request.method,
                'path': request.path,
                'user': user,
                'user_id': user_id,
                'status_code': response.status_code,
                'duration': round(duration * 1000, 2),  # ms
                'content_length': len(response.content) if hasattr(response, 'content') else 0,
            }

            # Only include query params in debug mode
            if settings.DEBUG:
                log_data['query_params'] = dict(request.GET.items())

            if response.status_code >= 500:
                logger.error(f"Request: {json.dumps(log_data)}")
            elif response.status_code >= 400:
                logger.warning(f"Request: {json.dumps(log_data)}")
            else:
                logger.info(f"Request: {json.dumps(log_data)}")

        return response
