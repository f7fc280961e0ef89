"""
Command-line entry point of the resource agent.
"""
