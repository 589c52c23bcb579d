"""Domain layer: entities and the ports the engine talks through."""
