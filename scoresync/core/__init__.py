"""Core scoresync components: rate derivation, cooldowns, sync engine, change feed."""
