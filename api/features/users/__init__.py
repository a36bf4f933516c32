"""Users feature: username lookup, lazy creation and per-user stats."""
