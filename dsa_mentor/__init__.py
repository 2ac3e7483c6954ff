"""DSA Mentor - 84-day learning-progress tracker API."""
