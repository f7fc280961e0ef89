"""Static data files shipped with the agent."""
