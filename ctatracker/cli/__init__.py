"""
CLI module - click commands for running the engine on capture snapshots
"""
