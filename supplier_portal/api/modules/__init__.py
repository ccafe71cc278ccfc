"""Route modules, one per portal screen. Imported by api/dashboard.py."""
