"""Small helpers shared across fleet_deployer modules."""
