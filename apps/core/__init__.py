"""
Core application for Razpored.

Shared pieces used by the other apps: template context (version and the
navigation of the admin shell).
"""
