from django.apps import AppConfig


class BlinksConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'blinks'
