"""Core runtime: completion loop, orchestrator, config and wiring."""
