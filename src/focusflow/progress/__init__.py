"""Focus-session log, daily goal and streaks."""
