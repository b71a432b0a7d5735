"""Domain value objects and checkout rules."""
