"""Background jobs: Dramatiq broker, actors and the reset scheduler."""
