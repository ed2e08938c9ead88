"""pydantic models for the upstream and downstream wire formats."""
