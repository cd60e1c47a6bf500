"""
Razpored Django applications package.

This package contains all Django apps for the clinic rostering tool:
- core: Shared template context
- razpored: Departments, workstations, staff and the assignment grid
- api: REST API endpoints for the grid
"""
