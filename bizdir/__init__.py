"""Local business directory: data access, catalog services and shopping cart."""
