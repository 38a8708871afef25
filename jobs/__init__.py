"""Background jobs: dramatiq actors and the periodic scheduler."""
