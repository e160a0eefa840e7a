"""Application services for Wine Value Finder."""
