"""Command line interface for the ECS deployer."""
