"""API Routers package."""
from . import employees, projects, activities, reports, events

__all__ = ['employees', 'projects', 'activities', 'reports', 'events']
