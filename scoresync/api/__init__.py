"""HTTP surface for scoresync."""
