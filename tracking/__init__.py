"""Session lifecycle, focus integration, streaks and analytics."""
