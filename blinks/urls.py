from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import BlinkViewSet

app_name = 'blinks'

router = DefaultRouter()
router.register(r'blinks', BlinkViewSet, basename='blink')

urlpatterns = [
    path('', include(router.urls)),
]
