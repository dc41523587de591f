"""scoresync command line interface."""
