"""Dashboard Blueprint, route modules and HTML templates."""
