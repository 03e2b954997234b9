"""Domain services used by the admin and public API blueprints."""
