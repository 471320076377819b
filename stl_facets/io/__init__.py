"""STL file input."""
