"""Error pages and the development server."""
