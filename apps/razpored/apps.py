"""Django app configuration for razpored app."""

from django.apps import AppConfig


class RazporedConfig(AppConfig):
    """Configuration for the Razpored (roster) application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.razpored"
    verbose_name = "Razpored"  # Slovenian: Roster

    def ready(self):
        """Initialize app when Django starts."""
        # Import signals here to ensure they're registered
        from . import signals  # noqa: F401
