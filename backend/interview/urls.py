from django.urls import path
from . import views

urlpatterns = [
    path("", views.demo, name="demo"),

    path("api/health/", views.health, name="health"),
    path("api/prompts/", views.prompts, name="prompts"),

    # Creates a LiveKit room on every call (reaped by LiveKit when empty)
    path("api/connection-details/", views.connection_details, name="connection_details"),
    path("api/analyze-transcript/", views.analyze_transcript, name="analyze_transcript"),
]
