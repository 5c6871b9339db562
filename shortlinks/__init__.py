"""shortlinks: a URL-shortening service (create, redirect, details)."""
