"""HTTP boundary for the SafeWork risk core."""
