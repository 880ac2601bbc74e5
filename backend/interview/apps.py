from django.apps import AppConfig


class InterviewConfig(AppConfig):
    name = "interview"
    verbose_name = "AI Interview"

    def ready(self):
        # Fail at startup, not on the first request, if the catalogue is broken
        from . import catalogue

        catalogue.load()
