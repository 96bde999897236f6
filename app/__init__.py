"""Scholar Hub service package."""
