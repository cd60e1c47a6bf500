"""
Context processors for the Razpored project.
"""

from django.conf import settings

# (url name, label) - sidebar of the admin shell
NAVIGATION = [
    ("razpored:monthly", "Mesečni razpored"),
    ("razpored:weekly", "Tedenski razpored"),
    ("razpored:staff", "Zdravniki"),
    ("razpored:departments", "Oddelki"),
    ("razpored:workstations", "Delovišča"),
]


def app_context(request):
    """
    Add version and navigation to template context.

    Returns:
        dict with 'app_version', 'navigation' and 'active_url_name' keys
    """
    match = getattr(request, "resolver_match", None)
    return {
        "app_version": settings.APP_VERSION,
        "navigation": NAVIGATION,
        "active_url_name": match.view_name if match else "",
    }
