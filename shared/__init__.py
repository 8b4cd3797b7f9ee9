"""Code shared by every VegMapKit tool."""
