"""
URL routing for API endpoints.
"""
from django.urls import path
from .views import CurrentReadingsView, SensorAqiHistoryView, HealthCheckView

app_name = 'api'

urlpatterns = [
    path('current-readings/', CurrentReadingsView.as_view(), name='current-readings'),
    path('sensors/<int:purpleair_id>/aqi-history/', SensorAqiHistoryView.as_view(), name='aqi-history'),
    path('health/', HealthCheckView.as_view(), name='health'),
]
