"""
URL configuration for the blinkspace project.

Every API route lives under /api/; the friends, users and blinks apps each
contribute their own urlpatterns.
"""
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from .admin import blinkspace_admin_site

urlpatterns = [
    # Admin - with custom admin site
    path('admin/', blinkspace_admin_site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # App URLs
    path('api/', include('users.urls')),
    path('api/', include('friends.urls')),
    path('api/', include('blinks.urls')),
]

# Serve uploaded media in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
