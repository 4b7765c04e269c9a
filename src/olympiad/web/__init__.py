"""Web API for the Olympiad back-office."""
