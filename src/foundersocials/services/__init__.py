"""Business logic services for the FounderSocials application."""
