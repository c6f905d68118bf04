"""Domain layer: entities, document codecs and ports."""
