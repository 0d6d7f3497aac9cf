"""Listener-side core: delivery context, lifecycle state machine, coordinator."""
