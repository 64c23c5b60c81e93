from django.apps import AppConfig


class AqiConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.aqi'
    verbose_name = 'AQI Computation Engine'
