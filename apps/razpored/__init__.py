"""
Razpored (roster) application.

This is the main application of the clinic rostering tool.
It handles:
- Departments, workstations ("delovišča") and staff members
- The monthly and weekly assignment grid (date x workstation)
- Per-department workstation order (drag to reorder)
- Live refresh of open grids when assignments change elsewhere
"""
