"""Repository data fetching, scoring and batch orchestration."""
