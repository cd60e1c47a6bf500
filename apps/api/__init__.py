"""
REST API application for Razpored.

This app provides REST API endpoints for:
- Reading the assignment grid of a month (monthly or weekly layout)
- Listing workstations in a department's display order
- Adding and removing assignments
- Storing a department's workstation order

Built with Django REST Framework.
"""
